"""Tests for perch.config — GeneratorConfig and TOML loading."""

from pathlib import Path

import pytest

from perch.config import GeneratorConfig, load_config, parse_mode, parse_url_entry
from perch.errors import ConfigurationError
from perch.fetching import FetchMethod


class TestGeneratorConfig:
    def test_defaults(self) -> None:
        cfg = GeneratorConfig()

        assert cfg.storage_dir == "static-site"
        assert cfg.dir_mode == 0o755
        assert cfg.file_mode == 0o644
        assert cfg.add_gitignore is True
        assert cfg.url_list == ()
        assert cfg.skip_url_list == ()
        assert cfg.auto is True
        assert cfg.auto_request_methods == frozenset({"GET"})
        assert cfg.auto_skip_parametrized is True
        assert cfg.auto_skip_csrf_input is True
        assert cfg.auto_skip_csrf_meta is True
        assert cfg.status_codes == frozenset({200})
        assert cfg.file_extension == "html"
        assert cfg.root_url_file_name == "_"
        assert cfg.default_fetch_method is FetchMethod.APP
        assert cfg.prepend_echo_content is True
        assert cfg.skip_marker == "skipStaticFileInclude"

    def test_frozen(self) -> None:
        cfg = GeneratorConfig()

        with pytest.raises(AttributeError):
            cfg.auto = False  # type: ignore[misc]

    def test_storage_path_and_host(self) -> None:
        cfg = GeneratorConfig(storage_dir="public/static", base_url="https://example.com:8443/app")
        assert cfg.storage_path == Path("public/static")
        assert cfg.host == "example.com:8443"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"dir_mode": 0o10000},
            {"file_mode": -1},
            {"file_mode": True},
            {"root_url_file_name": ""},
            {"timeout": 0},
            {"base_url": "localhost"},
            {"default_fetch_method": "app"},
            {"url_list": (("/a", "curl"),)},
        ],
    )
    def test_invalid_values(self, kwargs: dict) -> None:
        with pytest.raises(ConfigurationError):
            GeneratorConfig(**kwargs)

    @pytest.mark.parametrize(
        "data",
        [
            {"timeout": "30"},
            {"timeout": True},
            {"auto": "false"},
            {"add_gitignore": 1},
            {"prepend_echo_content": "yes"},
            {"storage_dir": 5},
            {"base_url": 8080},
            {"skip_marker": None},
        ],
    )
    def test_wrong_types_from_mapping(self, data: dict) -> None:
        with pytest.raises(ConfigurationError):
            GeneratorConfig.from_mapping(data)

    def test_with_overrides_ignores_none(self) -> None:
        cfg = GeneratorConfig()
        assert cfg.with_overrides(storage_dir=None) is cfg
        assert cfg.with_overrides(storage_dir="out", auto=None).storage_dir == "out"

    def test_with_overrides_unknown(self) -> None:
        with pytest.raises(ConfigurationError, match="nonsense"):
            GeneratorConfig().with_overrides(nonsense=1)


class TestFromMapping:
    def test_coerces_values(self) -> None:
        cfg = GeneratorConfig.from_mapping(
            {
                "dir_mode": "0775",
                "file_mode": "0o600",
                "url_list": ["/", ["/redirect", "curl"], ["/feed"]],
                "skip_url_list": ["/admin"],
                "auto_request_methods": ["get", "head"],
                "status_codes": [200, "203"],
                "default_fetch_method": "HTTP",
                "file_extension": False,
            }
        )
        assert cfg.dir_mode == 0o775
        assert cfg.file_mode == 0o600
        assert cfg.url_list == (("/", None), ("/redirect", FetchMethod.HTTP), ("/feed", None))
        assert cfg.skip_url_list == ("/admin",)
        assert cfg.auto_request_methods == frozenset({"GET", "HEAD"})
        assert cfg.status_codes == frozenset({200, 203})
        assert cfg.default_fetch_method is FetchMethod.HTTP
        assert cfg.file_extension is None

    def test_unknown_key(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown configuration option"):
            GeneratorConfig.from_mapping({"storage": "x"})

    def test_list_required(self) -> None:
        with pytest.raises(ConfigurationError, match="must be a list"):
            GeneratorConfig.from_mapping({"url_list": "/about"})

    def test_bad_status_code(self) -> None:
        with pytest.raises(ConfigurationError, match="status_codes"):
            GeneratorConfig.from_mapping({"status_codes": ["ok"]})


class TestParsers:
    @pytest.mark.parametrize("value", [0o755, "755", "0755", "0o755", " 0O755 "])
    def test_parse_mode(self, value: object) -> None:
        assert parse_mode(value) == 0o755

    @pytest.mark.parametrize("value", ["rwx", "9", None, 7.5])
    def test_parse_mode_invalid(self, value: object) -> None:
        with pytest.raises(ConfigurationError):
            parse_mode(value)

    def test_parse_url_entry(self) -> None:
        assert parse_url_entry("/about") == ("/about", None)
        assert parse_url_entry(["/about", "app"]) == ("/about", FetchMethod.APP)
        assert parse_url_entry(("/about", None)) == ("/about", None)

    def test_parse_url_entry_invalid(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_url_entry(["/about", "ftp"])
        with pytest.raises(ConfigurationError):
            parse_url_entry({"url": "/about"})


class TestLoadConfig:
    def test_defaults_without_files(self, tmp_path: Path) -> None:
        assert load_config(cwd=tmp_path) == GeneratorConfig()

    def test_perch_toml(self, tmp_path: Path) -> None:
        (tmp_path / "perch.toml").write_text('storage_dir = "build"\nauto = false\nurl_list = ["/"]\n')
        cfg = load_config(cwd=tmp_path)
        assert cfg.storage_dir == "build"
        assert cfg.auto is False
        assert cfg.url_list == (("/", None),)

    def test_pyproject_table(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(
            '[project]\nname = "site"\n\n[tool.perch]\nfile_extension = "htm"\n'
        )
        assert load_config(cwd=tmp_path).file_extension == "htm"

    def test_pyproject_without_table(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "site"\n')
        assert load_config(cwd=tmp_path) == GeneratorConfig()

    def test_perch_toml_wins(self, tmp_path: Path) -> None:
        (tmp_path / "perch.toml").write_text('storage_dir = "from-perch"\n')
        (tmp_path / "pyproject.toml").write_text('[tool.perch]\nstorage_dir = "from-pyproject"\n')
        assert load_config(cwd=tmp_path).storage_dir == "from-perch"

    def test_explicit_path(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.toml"
        path.write_text("status_codes = [200, 404]\n")
        assert load_config(path).status_codes == frozenset({200, 404})

    def test_explicit_path_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "perch.toml").write_text("storage_dir = \n")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            load_config(cwd=tmp_path)
