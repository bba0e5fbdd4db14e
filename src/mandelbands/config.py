"""Configuration objects, argument parsing and YAML loading for band renders."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from itertools import product
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Tuple, TypeVar

import yaml

from .computation import ESCAPE_LIMIT
from .geometry import RasterGeometry, Viewport

T = TypeVar("T")

BACKENDS = ("threads", "mpi")


@dataclass(frozen=True)
class RenderConfig:
    """Runtime configuration for a single render."""

    output: str
    width: int
    height: int
    upper_left: complex
    lower_right: complex
    workers: int = 32
    backend: str = "threads"  # 'threads' or 'mpi'
    ranks: int = 1  # processes mpirun starts for an mpi sweep entry
    track: bool = False  # log the run to MLflow
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend {self.backend!r}, expected one of {BACKENDS}")
        if self.workers < 1:
            raise ValueError(f"Worker count must be at least 1, got {self.workers}")
        # Rejects empty rasters and degenerate viewports up front.
        RasterGeometry(self.width, self.height)
        Viewport(self.upper_left, self.lower_right)

    @property
    def geometry(self) -> RasterGeometry:
        return RasterGeometry(self.width, self.height)

    @property
    def viewport(self) -> Viewport:
        return Viewport(self.upper_left, self.lower_right)

    @property
    def image_size(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def run_name(self) -> str:
        """Generate run name embedding the render parameters."""
        return f"{self.backend}_w{self.workers}_{self.image_size}"

    def to_dict(self) -> dict:
        """Convert to a flat dictionary for MLflow logging."""
        data = asdict(self)
        data["upper_left"] = format_complex(self.upper_left)
        data["lower_right"] = format_complex(self.lower_right)
        data["limit"] = ESCAPE_LIMIT
        return data

    def to_cli_args(self) -> List[str]:
        """Convert config to ``main.py`` arguments.

        The positionals follow ``--`` since corners may start with a minus sign.
        """
        args = [f"--workers={self.workers}", f"--backend={self.backend}"]
        if self.track:
            args.append("--track")
        if self.verbose:
            args.append("--verbose")
        args += [
            "--",
            self.output,
            self.image_size,
            format_complex(self.upper_left),
            format_complex(self.lower_right),
        ]
        return args


DEFAULT_RENDER_CONFIG = RenderConfig(
    output="mandel.png",
    width=1000,
    height=750,
    upper_left=complex(-1.20, 0.35),
    lower_right=complex(-1.0, 0.20),
    workers=32,
    backend="threads",
)


def default_render_config(**overrides: object) -> RenderConfig:
    """Return the canonical default config optionally overridden with kwargs."""
    return replace(DEFAULT_RENDER_CONFIG, **_coerce_fields(overrides))


def parse_pair(text: str, separator: str, kind: Callable[[str], T]) -> Tuple[T, T]:
    """Parse ``"<left><separator><right>"`` such as ``"400x600"`` or ``"1.0,0.5"``.

    The string is split at the first separator and both halves are converted
    with ``kind``.
    """
    index = text.find(separator)
    if index < 0:
        raise ValueError(f"Expected a pair separated by {separator!r}, got {text!r}")
    try:
        return kind(text[:index]), kind(text[index + 1 :])
    except ValueError as exc:
        raise ValueError(f"Could not parse {text!r} as a pair separated by {separator!r}") from exc


def parse_image_size(value: str) -> Tuple[int, int]:
    return parse_pair(value.lower(), "x", int)


def parse_complex(value: str) -> complex:
    """Parse ``"RE,IM"`` into a complex number."""
    re, im = parse_pair(value, ",", float)
    return complex(re, im)


def format_complex(value: complex) -> str:
    return f"{value.real!r},{value.imag!r}"


SuiteConfigs = Tuple[str, List[RenderConfig]]


def load_named_sweep_configs(yaml_path: str | Path, suite: str | None = None) -> List[SuiteConfigs]:
    """Expand a sweep file into ``(suite name, configs)`` pairs.

    A file either holds one ``sweep`` (named after the file) or a list of
    ``experiments``, each with a ``name`` and its own ``defaults`` layered on
    the top-level ones. With ``suite`` only that experiment is returned.
    """
    path = Path(yaml_path)
    with open(path) as f:
        cfg = yaml.safe_load(f) or {}

    defaults = cfg.get("defaults") or {}
    experiments = cfg.get("experiments") or [
        {"name": cfg.get("name") or path.stem, "sweep": cfg.get("sweep")}
    ]

    results = [
        (
            exp.get("name") or f"{path.stem}[{i}]",
            _expand_sweep({**defaults, **(exp.get("defaults") or {})}, exp.get("sweep") or {}),
        )
        for i, exp in enumerate(experiments)
        if suite is None or exp.get("name") == suite
    ]
    if suite is not None and not results:
        raise ValueError(f"Suite '{suite}' not found in {yaml_path}")
    return results


def load_sweep_configs(yaml_path: str | Path) -> List[RenderConfig]:
    """Every render of a sweep file, across all of its suites."""
    return [config for _, configs in load_named_sweep_configs(yaml_path) for config in configs]


def get_config_by_index(yaml_path: str | Path, index: int) -> RenderConfig:
    configs = load_sweep_configs(yaml_path)
    if not 0 <= index < len(configs):
        raise ValueError(f"Config index {index} out of range [0, {len(configs) - 1}]")
    return configs[index]


def _build_render_config(raw_data: Dict[str, object], viewport_index: int = 0) -> RenderConfig:
    data = {**_DEFAULT_FIELDS, **_coerce_fields(raw_data)}
    config = RenderConfig(**data)  # type: ignore[arg-type]
    # Output paths may embed the run name so sweeps do not overwrite each other.
    output = str(config.output).format(run_name=config.run_name, viewport=viewport_index)
    return replace(config, output=output)


def _expand_sweep(defaults: Dict[str, object], sweep: Dict[str, object]) -> List[RenderConfig]:
    """Expand sweep definition into RenderConfig instances."""
    configs: List[RenderConfig] = []

    viewports = sweep.get("viewports")
    param_grid = {k: sweep[k] for k in sweep if k not in {"viewports", "image_size"}}
    size_options = sweep.get("image_size")

    keys = list(param_grid.keys())
    if viewports:
        for viewport_index, (upper_left, lower_right) in enumerate(viewports):
            combos = product(*[param_grid[k] for k in keys]) if keys else [()]
            for combo in combos:
                data = {**defaults, **dict(zip(keys, combo))}
                data["upper_left"] = upper_left
                data["lower_right"] = lower_right
                configs.extend(_expand_sizes(data, size_options, viewport_index))
    elif not keys:
        configs.extend(_expand_sizes(defaults, size_options))
    else:
        for combo in product(*[param_grid[k] for k in keys]):
            data = {**defaults, **dict(zip(keys, combo))}
            configs.extend(_expand_sizes(data, size_options))

    return configs


def _coerce_fields(data: Dict[str, object]) -> Dict[str, object]:
    result = dict(data)
    image = result.pop("image_size", None)
    if image is not None:
        width, height = _normalize_size_entry(image)
        result.setdefault("width", width)
        result.setdefault("height", height)
    for key in ("width", "height", "workers", "ranks"):
        if key in result:
            result[key] = int(result[key])
    for key in ("upper_left", "lower_right"):
        if key in result:
            result[key] = _normalize_corner(result[key])
    if "output" in result:
        result["output"] = str(result["output"])
    return result


def _normalize_corner(entry: object) -> complex:
    if isinstance(entry, complex):
        return entry
    if isinstance(entry, (int, float)):
        return complex(entry)
    if isinstance(entry, str):
        return parse_complex(entry)
    if isinstance(entry, (list, tuple)) and len(entry) == 2:
        return complex(float(entry[0]), float(entry[1]))
    raise ValueError(f"Unsupported corner specification: {entry!r}")


def _normalize_size_entry(entry: object) -> Tuple[int, int]:
    if isinstance(entry, dict):
        width = entry.get("width")
        height = entry.get("height")
        if width is None or height is None:
            raise ValueError("image_size dict must include 'width' and 'height'")
        return int(width), int(height)
    if isinstance(entry, (list, tuple)) and len(entry) == 2:
        return int(entry[0]), int(entry[1])
    if isinstance(entry, str):
        return parse_image_size(entry)
    raise ValueError(f"Unsupported image size specification: {entry!r}")


def _expand_sizes(
    base: Dict[str, object],
    size_options: object,
    viewport_index: int = 0,
) -> List[RenderConfig]:
    if not size_options:
        return [_build_render_config(base, viewport_index)]

    sizes: Iterable[Tuple[int, int]]
    if isinstance(size_options, (list, tuple)) and not _is_size_pair(size_options):
        sizes = [_normalize_size_entry(opt) for opt in size_options]
    else:
        sizes = [_normalize_size_entry(size_options)]

    configs = []
    for width, height in sizes:
        data = {**base, "width": width, "height": height}
        data.pop("image_size", None)
        configs.append(_build_render_config(data, viewport_index))
    return configs


def _is_size_pair(entry: object) -> bool:
    return (
        isinstance(entry, (list, tuple))
        and len(entry) == 2
        and all(isinstance(v, int) for v in entry)
    )


_DEFAULT_FIELDS: Dict[str, object] = asdict(DEFAULT_RENDER_CONFIG)
