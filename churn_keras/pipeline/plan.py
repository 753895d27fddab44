"""
Target Plan Module
==================

Declarative, memoized build plan. Each :class:`Target` names a command, the
targets it depends on and the files it reads; a :class:`Plan` orders them,
fingerprints each one and rebuilds only the targets that are stale.

A fingerprint combines the command's source code, its parameters, the
content of its input files and the fingerprints of its dependencies. The
cache also records a hash of every built value, and of the dependency
values each target was built from, so a target whose upstream value was
rebuilt with a different result is rebuilt too.
"""

import inspect
import json
import shutil
import time
from dataclasses import dataclass, field
from datetime import datetime
from graphlib import CycleError, TopologicalSorter
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import joblib
import pandas as pd
from loguru import logger

FORMATS = ("joblib", "keras")
META_FILE = "meta.json"
MISSING_FILE = "<missing>"


@dataclass
class Target:
    """A named, cached step of a plan.

    ``command`` is called with one keyword argument per dependency (the
    dependency's value under its target name) plus ``params``. Files listed
    in ``file_inputs`` are hashed into the fingerprint, so editing one marks
    the target stale.
    """

    name: str
    command: Callable[..., Any]
    dependencies: Sequence[str] = ()
    params: Dict[str, Any] = field(default_factory=dict)
    format: str = "joblib"
    file_inputs: Sequence[Union[str, Path]] = ()

    def __post_init__(self):
        if self.format not in FORMATS:
            raise ValueError(f"Unknown format '{self.format}' for target '{self.name}'. Available: {FORMATS}")
        self.dependencies = tuple(self.dependencies)
        self.file_inputs = tuple(Path(p) for p in self.file_inputs)
        overlap = set(self.dependencies) & set(self.params)
        if overlap:
            raise ValueError(f"Target '{self.name}' uses {sorted(overlap)} as both dependency and param")

    def command_source(self) -> str:
        try:
            return inspect.getsource(self.command)
        except (OSError, TypeError):
            # Builtins, partials and REPL lambdas have no retrievable source
            return joblib.hash(self.command)

    def file_hashes(self) -> List[Tuple[str, str]]:
        return [
            (str(path), joblib.hash(path.read_bytes()) if path.exists() else MISSING_FILE)
            for path in self.file_inputs
        ]


def value_hash(value: Any, format: str = "joblib") -> str:
    """Content hash of a target value."""
    if format == "keras":
        return joblib.hash(value.get_weights())
    return joblib.hash(value)


class Plan:
    """Dependency graph of targets backed by an on-disk cache."""

    def __init__(self, targets: Iterable[Target], cache_dir: Union[str, Path]):
        self.targets: Dict[str, Target] = {}
        for target in targets:
            if target.name in self.targets:
                raise ValueError(f"Duplicate target name: {target.name}")
            self.targets[target.name] = target

        for target in self.targets.values():
            unknown = [d for d in target.dependencies if d not in self.targets]
            if unknown:
                raise ValueError(f"Target '{target.name}' depends on unknown targets: {unknown}")

        sorter = TopologicalSorter({name: t.dependencies for name, t in self.targets.items()})
        try:
            self.order: List[str] = list(sorter.static_order())
        except CycleError as e:
            raise ValueError(f"Plan contains a dependency cycle: {e.args[1]}") from e

        self.cache_dir = Path(cache_dir)

    def __len__(self) -> int:
        return len(self.targets)

    def __contains__(self, name: str) -> bool:
        return name in self.targets

    # Graph

    def graph(self) -> List[Tuple[str, str]]:
        """Dependency edges as ``(upstream, downstream)`` pairs."""
        return [(dep, name) for name in self.order for dep in self.targets[name].dependencies]

    def upstream(self, names: Iterable[str]) -> List[str]:
        """The given targets and everything they depend on, in build order."""
        needed = set()
        stack = list(names)
        while stack:
            name = stack.pop()
            if name not in self.targets:
                raise KeyError(f"Unknown target: {name}")
            if name not in needed:
                needed.add(name)
                stack.extend(self.targets[name].dependencies)
        return [name for name in self.order if name in needed]

    def downstream(self, name: str) -> List[str]:
        """Targets that depend on ``name``, directly or not, in build order."""
        affected = {name}
        for candidate in self.order:
            if any(dep in affected for dep in self.targets[candidate].dependencies):
                affected.add(candidate)
        affected.discard(name)
        return [n for n in self.order if n in affected]

    # Fingerprints

    def _fingerprint(self, name: str, upstream: Dict[str, str]) -> str:
        target = self.targets[name]
        return joblib.hash({
            "source": target.command_source(),
            "params": target.params,
            "format": target.format,
            "files": target.file_hashes(),
            "dependencies": [(dep, upstream[dep]) for dep in target.dependencies],
        })

    def fingerprints(self) -> Dict[str, str]:
        """Current fingerprint of every target."""
        result = {}
        for name in self.order:
            result[name] = self._fingerprint(name, result)
        return result

    # Cache

    def _target_dir(self, name: str) -> Path:
        return self.cache_dir / name

    def _value_path(self, name: str) -> Path:
        return self._target_dir(name) / f"value.{self.targets[name].format}"

    def read_meta(self, name: str) -> Optional[dict]:
        meta_path = self._target_dir(name) / META_FILE
        if not meta_path.exists():
            return None
        with open(meta_path, "r") as f:
            return json.load(f)

    def is_cached(self, name: str) -> bool:
        return self.read_meta(name) is not None and self._value_path(name).exists()

    def _dependency_hashes(self, name: str) -> Dict[str, Optional[str]]:
        """Value hashes currently cached for the dependencies of ``name``."""
        hashes = {}
        for dep in self.targets[name].dependencies:
            meta = self.read_meta(dep)
            hashes[dep] = meta.get("value_hash") if meta else None
        return hashes

    def _is_current(self, name: str, fingerprint: str) -> bool:
        """Whether the cache entry of ``name`` matches its fingerprint and inputs."""
        meta = self.read_meta(name)
        if meta is None or not self._value_path(name).exists():
            return False
        if meta.get("fingerprint") != fingerprint:
            return False
        return meta.get("dependencies") == self._dependency_hashes(name)

    def _store(self, name: str, value: Any, fingerprint: str, seconds: float):
        target = self.targets[name]
        target_dir = self._target_dir(name)
        if target_dir.exists():
            shutil.rmtree(target_dir)
        target_dir.mkdir(parents=True)

        value_path = self._value_path(name)
        if target.format == "keras":
            value.save(value_path)
        else:
            joblib.dump(value, value_path)

        # Metadata last: a target without it is treated as never built
        meta = {
            "fingerprint": fingerprint,
            "format": target.format,
            "value_hash": value_hash(value, target.format),
            "dependencies": self._dependency_hashes(name),
            "built_at": datetime.now().isoformat(timespec="seconds"),
            "seconds": round(seconds, 3),
        }
        with open(target_dir / META_FILE, "w") as f:
            json.dump(meta, f, indent=2)

    def _load(self, name: str) -> Any:
        value_path = self._value_path(name)
        if self.targets[name].format == "keras":
            from tensorflow import keras

            return keras.models.load_model(value_path)
        return joblib.load(value_path)

    def readd(self, name: str) -> Any:
        """Load a built target's value from the cache."""
        if name not in self.targets:
            raise KeyError(f"Unknown target: {name}")
        if not self.is_cached(name):
            raise FileNotFoundError(f"Target '{name}' has not been built")
        return self._load(name)

    def clean(self, name: Optional[str] = None):
        """Remove one target, or the whole cache, from disk."""
        path = self.cache_dir if name is None else self._target_dir(name)
        if path.exists():
            shutil.rmtree(path)
            logger.info(f"Removed cache at {path}")

    # Build

    def outdated(self, fingerprints: Optional[Dict[str, str]] = None) -> List[str]:
        """
        Targets that would be rebuilt by :meth:`make`.

        A target is stale when its cache entry is missing, its fingerprint
        changed, the cached values of its dependencies differ from those it
        was built from, or any of its dependencies is stale.
        """
        fingerprints = fingerprints or self.fingerprints()
        stale = set()
        for name in self.order:
            if not self._is_current(name, fingerprints[name]):
                stale.add(name)
                stale.update(self.downstream(name))
        return [name for name in self.order if name in stale]

    def make(self, targets: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        """
        Build stale targets.

        Targets are checked in build order, after their dependencies have
        been rebuilt, so a dependency rebuilt to an identical value leaves
        its dependents cached.

        Args:
            targets: Restrict the build to these targets and their upstream

        Returns:
            Build report with ``built``, ``skipped`` and per-target ``seconds``
        """
        names = self.upstream(targets) if targets else list(self.order)

        fingerprints: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        report = {"built": [], "skipped": [], "seconds": {}}

        def value_of(dep: str) -> Any:
            if dep not in values:
                values[dep] = self._load(dep)
            return values[dep]

        for name in names:
            fingerprints[name] = self._fingerprint(name, fingerprints)
            if self._is_current(name, fingerprints[name]):
                logger.debug(f"Target '{name}' is up to date")
                report["skipped"].append(name)
                continue

            target = self.targets[name]
            kwargs = {dep: value_of(dep) for dep in target.dependencies}
            kwargs.update(target.params)

            logger.info(f"Building target '{name}'...")
            start = time.perf_counter()
            try:
                value = target.command(**kwargs)
            except Exception as e:
                logger.error(f"Target '{name}' failed: {e}")
                raise
            seconds = time.perf_counter() - start

            # The command may have created or replaced its input files
            if target.file_inputs:
                fingerprints[name] = self._fingerprint(name, fingerprints)

            self._store(name, value, fingerprints[name], seconds)
            values[name] = value
            report["built"].append(name)
            report["seconds"][name] = seconds
            logger.info(f"Built target '{name}' in {seconds:.2f}s")

        if not report["built"]:
            logger.info("All targets are up to date")

        return report

    def summary(self) -> pd.DataFrame:
        """One row per target with its dependencies and cache status."""
        stale = set(self.outdated())
        rows = []
        for name in self.order:
            meta = self.read_meta(name) or {}
            rows.append({
                "target": name,
                "dependencies": ", ".join(self.targets[name].dependencies),
                "format": self.targets[name].format,
                "status": "outdated" if name in stale else "up to date",
                "built_at": meta.get("built_at"),
                "seconds": meta.get("seconds"),
            })
        return pd.DataFrame(rows)
