"""Data module for loading and preprocessing data."""

from .data_loader import DataLoader
from .preprocessor import DataPreprocessor

__all__ = ["DataLoader", "DataPreprocessor"]
