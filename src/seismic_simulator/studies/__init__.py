"""
Studies framework: reproducible convergence and sensitivity analyses.

A study varies one entry of the flat engine parameter dict (``building_age``,
``magnitude``, ``stiffnesses[0]``, ...) and calls
`seismic_simulator.core.engine.run_simulation` once per value. Every run of a
study sees the same ground-motion realization, so the response differences
come from the swept parameter alone.
"""
from __future__ import annotations

from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import copy
import json
import re
import subprocess

import numpy as np


# Seed used when a study config leaves the ground motion unseeded
STUDY_SEED = 0

PathToken = Tuple[str, Optional[int]]

_TOKEN_RE = re.compile(r"(?P<key>[A-Za-z_]\w*)(?:\[(?P<idx>\d+)\])?")
_SEQUENCE_TYPES = (list, tuple, np.ndarray)


# ----------------------------
# Parameter paths
# ----------------------------

def _parse_path_tokens(path: str) -> List[PathToken]:
    """
    Split a parameter path into (key, index) pairs.

    ``"stiffnesses[0]"`` gives ``[("stiffnesses", 0)]`` and
    ``"extra.masses[2]"`` gives ``[("extra", None), ("masses", 2)]``.
    """
    tokens: List[PathToken] = []
    for part in path.split("."):
        match = _TOKEN_RE.fullmatch(part.strip())
        if match is None:
            raise ValueError(
                f"Invalid param path token {part!r} in {path!r}; "
                "expected a name with an optional [index], e.g. 'stiffnesses[0]'."
            )
        idx = match.group("idx")
        tokens.append((match.group("key"), None if idx is None else int(idx)))
    return tokens


def _index(seq: Any, idx: int, path: str, key: str) -> Any:
    if not isinstance(seq, _SEQUENCE_TYPES):
        raise TypeError(f"Path '{path}' indexes '{key}', which is a {type(seq).__name__}")
    if idx >= len(seq):
        raise IndexError(f"Path '{path}': '{key}' has {len(seq)} entries, no index {idx}")
    return seq[idx]


def get_by_path(cfg: Dict[str, Any], path: str) -> Any:
    """Value at a dot + [idx] path."""
    node: Any = cfg
    for key, idx in _parse_path_tokens(path):
        if not isinstance(node, dict) or key not in node:
            raise KeyError(f"Path '{path}' not found at key '{key}'")
        node = node[key]
        if idx is not None:
            node = _index(node, idx, path, key)
    return node


def set_by_path(cfg: Dict[str, Any], path: str, value: Any) -> Dict[str, Any]:
    """
    Deep copy of ``cfg`` with ``value`` written at ``path``.

    Missing sections are created as dicts. Per-floor arrays are turned into
    lists on write; their indices must already exist.
    """
    out = copy.deepcopy(cfg)
    *parents, (last_key, last_idx) = _parse_path_tokens(path)

    node: Any = out
    for key, idx in parents:
        if not isinstance(node.get(key), (dict, list)):
            node[key] = {}
        node = node[key]
        if idx is not None:
            node = _index(node, idx, path, key)

    if last_idx is None:
        node[last_key] = value
        return out

    seq = node.get(last_key)
    if not isinstance(seq, _SEQUENCE_TYPES):
        raise TypeError(f"Path '{path}' indexes '{last_key}', which is a {type(seq).__name__}")
    seq = list(seq)
    _index(seq, last_idx, path, last_key)
    seq[last_idx] = value
    node[last_key] = seq
    return out


# ----------------------------
# Run metadata
# ----------------------------

def get_git_hash() -> str:
    """Current commit hash, or 'unknown' outside a git checkout."""
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return "unknown"
    return proc.stdout.strip()


def _json_default(obj: Any) -> Any:
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.generic):
        return obj.item()
    if is_dataclass(obj):
        return asdict(obj)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return str(obj)


def save_study_metadata(output_dir: Path, *, metadata: Dict[str, Any]) -> None:
    """Write ``run_metadata.json`` (git hash plus ``metadata``) to ``output_dir``."""
    output_dir.mkdir(parents=True, exist_ok=True)
    payload = {"git_hash": get_git_hash(), **metadata}
    text = json.dumps(payload, indent=2, default=_json_default)
    (output_dir / "run_metadata.json").write_text(text, encoding="utf-8")


# ----------------------------
# Study parameter sets
# ----------------------------

def merge_with_engine_defaults(cfg_overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Engine defaults updated with ``cfg_overrides``, as `run_simulation()` would
    see them. Lets a study read base values (e.g. the seed building's
    stiffnesses) before anything runs.
    """
    from seismic_simulator.core.engine import get_default_simulation_params

    merged = get_default_simulation_params()
    merged.update(copy.deepcopy(cfg_overrides))
    return merged


def harmonize_time_grid(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep copy of ``cfg`` with float ``dt``/``duration`` (both > 0) and a
    pinned ``seed`` (STUDY_SEED unless one is set).
    """
    out = copy.deepcopy(cfg)
    for key, default in (("dt", 0.02), ("duration", 20.0)):
        val = float(out.get(key, default))
        if val <= 0.0:
            raise ValueError(f"{key} must be > 0, got {val}")
        out[key] = val
    if out.get("seed") is None:
        out["seed"] = STUDY_SEED
    return out


def parse_floats_csv(s: str) -> List[float]:
    """'0.04,0.02 0.01' -> [0.04, 0.02, 0.01]"""
    return [float(p) for p in re.split(r"[,\s]+", s.strip()) if p]
