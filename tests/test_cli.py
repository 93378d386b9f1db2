"""Tests for the `nugetcfg` CLI."""

import pytest

from nuget_config.cli import main
from nuget_config.editing import parse_with_positions
from nuget_config.manager import ConfigManager


@pytest.fixture(autouse=True)
def _isolate(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("NUGET_CONFIG_FILE", raising=False)
    for name in ("NUGETCFG_INDENT", "NUGETCFG_CONFIG_ENV_VAR",
                 "NUGETCFG_PROTOCOL_VERSION", "NUGETCFG_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class TestReadCommands:
    def test_show(self, config_file, capsys):
        main(["--file", str(config_file), "show"])
        out = capsys.readouterr().out
        assert "nuget.org" in out
        assert "https://api.nuget.org/v3/index.json" in out
        assert "disabled" in out
        assert "My Feed" in out
        assert "globalPackagesFolder" in out

    def test_positions(self, config_file, capsys):
        main(["--file", str(config_file), "positions"])
        out = capsys.readouterr().out
        assert "packageSources/add[key=local]" in out
        assert "6:5-" in out

    def test_uses_search_locations(self, tmp_path, full_config, capsys):
        (tmp_path / "NuGet.Config").write_bytes(full_config)
        main(["show"])
        assert "nuget.org" in capsys.readouterr().out


class TestEditCommands:
    def test_add_source_preserves_other_bytes(self, config_file, full_config):
        main(["--file", str(config_file), "add-source", "ci", "https://ci.example", "--protocol-version", "3"])
        out = config_file.read_bytes()
        assert out == full_config.replace(
            b"  </packageSources>",
            b'    <add key="ci" value="https://ci.example" protocolVersion="3" />\n  </packageSources>',
        )

    def test_default_protocol_version_from_settings(self, config_file, monkeypatch):
        monkeypatch.setenv("NUGETCFG_PROTOCOL_VERSION", "2")
        main(["--file", str(config_file), "add-source", "ci", "https://ci.example"])
        config = parse_with_positions(config_file.read_bytes()).config
        assert config.get_source("ci").protocol_version == "2"

    def test_remove_source(self, config_file):
        main(["--file", str(config_file), "remove-source", "local"])
        config = parse_with_positions(config_file.read_bytes()).config
        assert not config.has_source("local")

    def test_set_url_and_version(self, config_file):
        main(["--file", str(config_file), "set-url", "local", "https://feed"])
        main(["--file", str(config_file), "set-version", "local", "3"])
        source = parse_with_positions(config_file.read_bytes()).config.get_source("local")
        assert (source.value, source.protocol_version) == ("https://feed", "3")

    def test_enable_disable(self, config_file):
        main(["--file", str(config_file), "enable", "local"])
        main(["--file", str(config_file), "disable", "nuget.org"])
        config = parse_with_positions(config_file.read_bytes()).config
        assert not config.is_disabled("local")
        assert config.is_disabled("nuget.org")

    def test_set_and_remove_option(self, config_file):
        main(["--file", str(config_file), "set-option", "dependencyVersion", "Highest"])
        main(["--file", str(config_file), "remove-option", "globalPackagesFolder"])
        config = parse_with_positions(config_file.read_bytes()).config
        assert config.get_option("dependencyVersion") == "Highest"
        assert config.get_option("globalPackagesFolder") is None

    def test_dry_run_does_not_write(self, config_file, full_config, capsys):
        main(["--file", str(config_file), "--dry-run", "remove-source", "local"])
        assert config_file.read_bytes() == full_config
        assert 'key="local" value="./packages"' not in capsys.readouterr().out

    def test_no_change(self, config_file, full_config, capsys):
        main(["--file", str(config_file), "disable", "local"])
        assert "No changes" in capsys.readouterr().out
        assert config_file.read_bytes() == full_config


class TestInit:
    def test_creates_default(self, tmp_path):
        path = tmp_path / "sub" / "NuGet.Config"
        main(["init", str(path)])
        config = parse_with_positions(path.read_bytes()).config
        assert config.has_source("nuget.org")

    def test_refuses_to_overwrite(self, config_file, full_config):
        with pytest.raises(SystemExit) as excinfo:
            main(["init", str(config_file)])
        assert excinfo.value.code == 1
        assert config_file.read_bytes() == full_config

    def test_force(self, config_file):
        main(["init", str(config_file), "--force"])
        config = parse_with_positions(config_file.read_bytes()).config
        assert [s.key for s in config.package_sources.sources] == ["nuget.org"]


class TestErrors:
    def test_unknown_source_exits_1(self, config_file, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--file", str(config_file), "remove-source", "missing"])
        assert excinfo.value.code == 1
        assert "missing" in capsys.readouterr().err

    def test_missing_file_exits_1(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            main(["--file", str(tmp_path / "nope.config"), "show"])
        assert excinfo.value.code == 1

    def test_write_failure_exits_1(self, config_file, full_config, monkeypatch, capsys):
        def _fail(path, data):
            raise PermissionError(13, "Permission denied", path)

        monkeypatch.setattr(ConfigManager, "write_bytes", staticmethod(_fail))
        with pytest.raises(SystemExit) as excinfo:
            main(["--file", str(config_file), "remove-source", "local"])
        assert excinfo.value.code == 1
        assert "Permission denied" in capsys.readouterr().err
        assert config_file.read_bytes() == full_config

    def test_directory_as_file_exits_1(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            main(["--file", str(tmp_path), "show"])
        assert excinfo.value.code == 1

    def test_usage_error_exits_2(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["add-source", "only-key"])
        assert excinfo.value.code == 2

    def test_command_required(self):
        with pytest.raises(SystemExit) as excinfo:
            main([])
        assert excinfo.value.code == 2
