# processing_config.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from scdemux.constants import DEFAULT_CLASS_MISMATCHES, DEFAULT_THREADS, DEFAULT_UMI_MISMATCHES


# -------------------------
# Utility parsing functions
# -------------------------
def _parse_bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    s = str(v).strip().lower()
    if s in ("1", "true", "t", "yes", "y", "on"):
        return True
    if s in ("0", "false", "f", "no", "n", "off", ""):
        return False
    raise ValueError(f"Cannot interpret {v!r} as a boolean.")


def _parse_list(v: Any) -> List:
    if v is None:
        return []
    if isinstance(v, (list, tuple)):
        return list(v)
    s = str(v).strip()
    if s == "" or s.lower() == "none":
        return []
    # comma separated, optionally bracketed
    s2 = s.strip("[]() ")
    return [p.strip() for p in s2.split(",") if p.strip() != ""]


def _parse_optional_int(v: Any) -> Optional[int]:
    if v is None:
        return None
    if isinstance(v, int):
        return v
    s = str(v).strip()
    if s == "" or s.lower() == "none":
        return None
    return int(s)


@dataclass
class ProcessingConfig:
    """Parameters of one barcode processing run."""

    # General I/O
    input_file: Optional[str] = None
    output_file: Optional[str] = None
    log_file: Optional[str] = None
    write_h5ad: bool = False

    # Barcode layout
    barcode_file: Optional[str] = None
    ci_barcode_indices: List[int] = field(default_factory=list)

    # Name lookups
    antibody_file: Optional[str] = None
    antibody_index: Optional[int] = None
    treatment_file: Optional[str] = None
    treatment_index: Optional[int] = None
    class_seq_file: Optional[str] = None
    class_name_file: Optional[str] = None

    # Matching and compute
    umi_mismatches: int = DEFAULT_UMI_MISMATCHES
    class_mismatches: int = DEFAULT_CLASS_MISMATCHES
    threads: int = DEFAULT_THREADS

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "ProcessingConfig":
        """Build a config from loosely typed values (YAML, CLI strings)."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

        kwargs: Dict[str, Any] = {}
        for name, value in values.items():
            if name == "ci_barcode_indices":
                kwargs[name] = [int(x) for x in _parse_list(value)]
            elif name == "write_h5ad":
                kwargs[name] = _parse_bool(value)
            elif name in ("antibody_index", "treatment_index"):
                kwargs[name] = _parse_optional_int(value)
            elif name in ("umi_mismatches", "class_mismatches", "threads"):
                kwargs[name] = int(value)
            else:
                kwargs[name] = None if value is None else str(value)
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ProcessingConfig":
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Config file not found: {p}")
        data = yaml.safe_load(p.read_text(encoding="utf8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {p} must contain a mapping at the top level.")
        return cls.from_dict(data)

    def validate(self, require_paths: bool = True, raise_on_error: bool = True) -> List[str]:
        """
        Validate the config. If require_paths True, check that every given input file exists.
        Returns a list of error messages (empty if none). Raises ValueError if raise_on_error True.
        """
        errors: List[str] = []
        if not self.input_file:
            errors.append("input_file is required but missing.")
        if not self.output_file:
            errors.append("output_file is required but missing.")
        if not self.barcode_file:
            errors.append("barcode_file is required but missing.")
        if not self.ci_barcode_indices:
            errors.append("ci_barcode_indices must list at least one barcode position.")
        if any(idx < 0 for idx in self.ci_barcode_indices):
            errors.append("ci_barcode_indices must be non-negative.")

        if self.antibody_index is None:
            errors.append("antibody_index is required to tell antibody barcodes apart.")
        if self.treatment_file and self.treatment_index is None:
            errors.append("treatment_index is required when treatment_file is given.")
        if bool(self.class_seq_file) != bool(self.class_name_file):
            errors.append("class_seq_file and class_name_file must be given together.")

        if self.umi_mismatches < 0:
            errors.append("umi_mismatches must be >= 0.")
        if self.class_mismatches < 0:
            errors.append("class_mismatches must be >= 0.")
        if self.threads == 0:
            errors.append("threads must be non-zero (negative means all cores).")

        if require_paths:
            for name in (
                "input_file",
                "barcode_file",
                "antibody_file",
                "treatment_file",
                "class_seq_file",
                "class_name_file",
            ):
                value = getattr(self, name)
                if value and not Path(value).exists():
                    errors.append(f"{name} does not exist: {value}")

        if raise_on_error and errors:
            raise ValueError("ProcessingConfig validation failed:\n  " + "\n  ".join(errors))
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_yaml(self, path: Optional[Union[str, Path]] = None) -> str:
        """Dump config to YAML (string if path None) or save to file at path."""
        text = yaml.safe_dump(self.to_dict(), sort_keys=False)
        if path is None:
            return text
        p = Path(path)
        p.write_text(text, encoding="utf8")
        return str(p)

    def __repr__(self) -> str:
        return f"<ProcessingConfig input={self.input_file} output={self.output_file}>"
