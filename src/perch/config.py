"""Generator configuration.

GeneratorConfig is a frozen dataclass: every recognized option is a typed
field with a documented default. Nothing is assigned dynamically from
option maps; ``from_mapping()`` validates keys and coerces values.
"""

import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from perch._internal.types import FetchMethod, UrlEntry
from perch.errors import ConfigurationError

CONFIG_FILE_NAME = "perch.toml"
PYPROJECT_TABLE = "perch"

_MODE_FIELDS = frozenset({"dir_mode", "file_mode"})
_BOOL_FIELDS = (
    "add_gitignore",
    "auto",
    "auto_skip_parametrized",
    "auto_skip_csrf_input",
    "auto_skip_csrf_meta",
    "prepend_echo_content",
)
_STR_FIELDS = ("root_url_file_name", "base_url", "skip_marker")


def _opt(default: Any, help: str) -> Any:
    """Field with a default and a help string (rendered by ``perch publish``)."""
    return field(default=default, metadata={"help": help})


@dataclass(frozen=True, slots=True)
class GeneratorConfig:
    """Static site generation options. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = GeneratorConfig(storage_dir="build/static", auto=False,
                                 url_list=(("/", None), ("/about", None)))
    """

    # Storage
    storage_dir: str | Path = _opt("static-site", "Directory the static files are written to")
    dir_mode: int = _opt(0o755, "Permissions for created directories")
    file_mode: int = _opt(0o644, "Permissions for created files")
    add_gitignore: bool = _opt(True, "Add a .gitignore to the static files directory")

    # URLs
    url_list: tuple[UrlEntry, ...] = _opt((), "URLs to be converted into static files")
    skip_url_list: tuple[str, ...] = _opt((), "URLs to be skipped during generation")

    # Auto-discovery
    auto: bool = _opt(True, "Discover URLs from the application's routes")
    auto_request_methods: frozenset[str] = _opt(
        frozenset({"GET"}), "Only routes with one of these methods are discovered"
    )
    auto_skip_parametrized: bool = _opt(True, "Routes with path parameters are not discovered")
    auto_skip_csrf_input: bool = _opt(True, "Skip pages containing a CSRF token input (auto mode)")
    auto_skip_csrf_meta: bool = _opt(True, "Skip pages containing a CSRF meta tag (auto mode)")

    # Cache eligibility and file naming
    status_codes: frozenset[int] = _opt(frozenset({200}), "HTTP status codes that are cached")
    file_extension: str | None = _opt("html", "Extension added to static file names")
    root_url_file_name: str = _opt("_", "File name used for the root URL '/'")

    # Fetching
    default_fetch_method: FetchMethod = _opt(
        FetchMethod.APP, "How content is fetched: 'app' (in-process) or 'http'"
    )
    prepend_echo_content: bool = _opt(True, "Prepend output printed by handlers to the page body")
    base_url: str = _opt("http://localhost", "Site URL used for http fetches and the Host header")
    skip_marker: str = _opt(
        "skipStaticFileInclude", "Query argument appended to http fetches to bypass the fallback"
    )
    timeout: float = _opt(30.0, "Timeout in seconds for each http fetch")

    def __post_init__(self) -> None:
        for name in _MODE_FIELDS:
            mode = getattr(self, name)
            if isinstance(mode, bool) or not isinstance(mode, int) or not 0 <= mode <= 0o7777:
                msg = f"{name} must be a permission mode between 0o0 and 0o7777, got {mode!r}"
                raise ConfigurationError(msg)
        if not self.root_url_file_name:
            msg = "root_url_file_name must not be empty"
            raise ConfigurationError(msg)
        if self.file_extension is not None and not isinstance(self.file_extension, str):
            msg = f"file_extension must be a string or None, got {self.file_extension!r}"
            raise ConfigurationError(msg)
        if not isinstance(self.default_fetch_method, FetchMethod):
            msg = (
                "default_fetch_method must be a FetchMethod, "
                f"got {self.default_fetch_method!r}"
            )
            raise ConfigurationError(msg)
        for name in _BOOL_FIELDS:
            if not isinstance(getattr(self, name), bool):
                msg = f"{name} must be true or false, got {getattr(self, name)!r}"
                raise ConfigurationError(msg)
        for name in _STR_FIELDS:
            if not isinstance(getattr(self, name), str):
                msg = f"{name} must be a string, got {getattr(self, name)!r}"
                raise ConfigurationError(msg)
        if not isinstance(self.storage_dir, (str, Path)):
            msg = f"storage_dir must be a path, got {self.storage_dir!r}"
            raise ConfigurationError(msg)
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
            msg = f"timeout must be a number, got {self.timeout!r}"
            raise ConfigurationError(msg)
        if self.timeout <= 0:
            msg = f"timeout must be positive, got {self.timeout!r}"
            raise ConfigurationError(msg)
        if not urlsplit(self.base_url).netloc:
            msg = f"base_url must be an absolute URL, got {self.base_url!r}"
            raise ConfigurationError(msg)
        for url, method in self.url_list:
            if not isinstance(url, str) or (method is not None and not isinstance(method, FetchMethod)):
                msg = f"Invalid url_list entry: {(url, method)!r}"
                raise ConfigurationError(msg)

    @property
    def storage_path(self) -> Path:
        return Path(self.storage_dir)

    @property
    def host(self) -> str:
        """Host header value derived from ``base_url``."""
        return urlsplit(self.base_url).netloc

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GeneratorConfig":
        """Build a config from a plain mapping (TOML table, CLI overrides).

        Unknown keys are rejected. Raises ``ConfigurationError`` for values
        that cannot be coerced.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            msg = f"Unknown configuration option(s): {', '.join(unknown)}"
            raise ConfigurationError(msg)
        return cls(**{key: _coerce(key, value) for key, value in data.items()})

    def with_overrides(self, **changes: Any) -> "GeneratorConfig":
        """Return a copy with the given options replaced. ``None`` values are ignored."""
        present = {key: _coerce(key, value) for key, value in changes.items() if value is not None}
        if not present:
            return self
        known = {f.name for f in fields(self)}
        unknown = sorted(set(present) - known)
        if unknown:
            msg = f"Unknown configuration option(s): {', '.join(unknown)}"
            raise ConfigurationError(msg)
        return replace(self, **present)


def _coerce(key: str, value: Any) -> Any:
    if key in _MODE_FIELDS:
        return parse_mode(value)
    if key == "url_list":
        return tuple(parse_url_entry(entry) for entry in _as_list(key, value))
    if key == "skip_url_list":
        return tuple(str(url) for url in _as_list(key, value))
    if key == "auto_request_methods":
        return frozenset(str(method).upper() for method in _as_list(key, value))
    if key == "status_codes":
        try:
            return frozenset(int(code) for code in _as_list(key, value))
        except (TypeError, ValueError) as exc:
            msg = f"status_codes must be integers, got {value!r}"
            raise ConfigurationError(msg) from exc
    if key == "default_fetch_method":
        return parse_fetch_method(value)
    if key == "file_extension" and value in (False, ""):
        return None
    return value


def _as_list(key: str, value: Any) -> list[Any]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        msg = f"{key} must be a list, got {value!r}"
        raise ConfigurationError(msg)
    return list(value)


def parse_mode(value: Any) -> int:
    """Parse a permission mode given as an int or an octal string.

    ``"755"``, ``"0755"`` and ``"0o755"`` all parse to ``0o755``.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower().removeprefix("0o")
        try:
            return int(text, 8)
        except ValueError:
            pass
    msg = f"Invalid permission mode: {value!r}"
    raise ConfigurationError(msg)


def parse_fetch_method(value: Any) -> FetchMethod:
    try:
        return FetchMethod(value)
    except ValueError as exc:
        allowed = ", ".join(repr(m.value) for m in FetchMethod)
        msg = f"Unknown fetch method {value!r} (expected one of {allowed})"
        raise ConfigurationError(msg) from exc


def parse_url_entry(entry: Any) -> UrlEntry:
    """Parse an explicit URL entry: ``"/about"`` or ``["/about", "http"]``."""
    if isinstance(entry, str):
        return (entry, None)
    if isinstance(entry, (list, tuple)) and len(entry) in (1, 2) and isinstance(entry[0], str):
        method = parse_fetch_method(entry[1]) if len(entry) == 2 and entry[1] is not None else None
        return (entry[0], method)
    msg = f"Invalid url_list entry: {entry!r}"
    raise ConfigurationError(msg)


def read_config_table(path: Path) -> dict[str, Any]:
    """Read the perch options table from a TOML file.

    ``pyproject.toml`` files contribute their ``[tool.perch]`` table;
    any other file is read as a flat options document.
    """
    try:
        with path.open("rb") as fh:
            document = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise ConfigurationError(msg) from exc
    if path.name == "pyproject.toml":
        return dict(document.get("tool", {}).get(PYPROJECT_TABLE, {}))
    return document


def load_config(path: str | Path | None = None, *, cwd: str | Path | None = None) -> GeneratorConfig:
    """Load configuration from a TOML file.

    With an explicit *path* the file must exist. Otherwise ``perch.toml``
    in *cwd* is used, then the ``[tool.perch]`` table of ``pyproject.toml``,
    then the defaults.
    """
    if path is not None:
        config_path = Path(path)
        if not config_path.is_file():
            msg = f"Config file not found: {config_path}"
            raise ConfigurationError(msg)
        return GeneratorConfig.from_mapping(read_config_table(config_path))

    base = Path(cwd) if cwd is not None else Path.cwd()
    for candidate in (base / CONFIG_FILE_NAME, base / "pyproject.toml"):
        if candidate.is_file():
            return GeneratorConfig.from_mapping(read_config_table(candidate))
    return GeneratorConfig()
