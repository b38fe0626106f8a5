"""
Tests for configuration — devbox.json parsing, lookup, writing, feature flags.
"""

import json
import textwrap
from pathlib import Path

import pytest

from devbox.core.config import featureflag
from devbox.core.config.loader import (
    CONFIG_FILENAME,
    find_config_dir,
    init_config,
    load_config,
    save_config,
)
from devbox.core.errors import ConfigMalformedError, ConfigNotFoundError, MissingFieldError, UserError
from devbox.core.models import Config, Stage, SyncSessionSpec


@pytest.fixture
def full_devbox_json(tmp_path: Path) -> Path:
    content = textwrap.dedent("""\
        {
          "packages": ["python3", "git"],
          "shell": {"init_hook": ["echo hello", "export FOO=bar"]},
          "install_stage": {"command": "pip install -r requirements.txt"},
          "build_stage": {"command": ["make", "make docs"]},
          "start_stage": {"command": "python main.py"}
        }
    """)
    path = tmp_path / CONFIG_FILENAME
    path.write_text(content)
    return path


class TestLoadConfig:
    def test_load_full_config(self, full_devbox_json: Path):
        cfg = load_config(full_devbox_json)
        assert cfg.packages == ["python3", "git"]
        assert cfg.build_stage is not None
        assert cfg.build_stage.command == ["make", "make docs"]

    def test_string_command_becomes_list(self, full_devbox_json: Path):
        cfg = load_config(full_devbox_json)
        assert cfg.install_stage.command == ["pip install -r requirements.txt"]
        assert cfg.start_stage.command == ["python main.py"]

    def test_init_hook_list_joined(self, full_devbox_json: Path):
        cfg = load_config(full_devbox_json)
        assert cfg.shell.init_hook_text == "echo hello\nexport FOO=bar"

    def test_empty_object_is_valid(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("{}")
        cfg = load_config(path)
        assert cfg.packages == []
        assert cfg.install_stage is None
        assert cfg.shell.init_hook_text == ""

    def test_duplicate_packages_dropped(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text(json.dumps({"packages": ["git", "curl", "git"]}))
        assert load_config(path).packages == ["git", "curl"]

    def test_invalid_json_raises(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("{ not json")
        with pytest.raises(ConfigMalformedError, match="Invalid JSON"):
            load_config(path)

    def test_non_object_raises(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text('["git"]')
        with pytest.raises(ConfigMalformedError, match="Expected a JSON object"):
            load_config(path)

    def test_packages_must_be_a_list(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text(json.dumps({"packages": "git"}))
        with pytest.raises(ConfigMalformedError, match="Invalid devbox configuration"):
            load_config(path)

    def test_stage_commands_must_be_strings(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text(json.dumps({"build_stage": {"command": [1, 2]}}))
        with pytest.raises(ConfigMalformedError):
            load_config(path)

    def test_unknown_fields_ignored(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text(json.dumps({
            "$schema": "https://example.com/devbox.schema.json",
            "packages": ["git"],
            "shell": {"init_hook": "echo hi", "scripts": {}},
        }))
        cfg = load_config(path)

        assert cfg.packages == ["git"]
        assert cfg.shell.init_hook_text == "echo hi"
        assert "$schema" not in cfg.to_json_dict()

    def test_invalid_utf8_raises(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_bytes(b'{"packages": ["\xff"]}')
        with pytest.raises(ConfigMalformedError, match="Cannot read") as exc:
            load_config(path)
        assert isinstance(exc.value.__cause__, UnicodeDecodeError)

    def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(ConfigMalformedError, match="Cannot read"):
            load_config(tmp_path / CONFIG_FILENAME)


class TestFindConfigDir:
    def test_find_in_current_dir(self, tmp_path: Path):
        (tmp_path / CONFIG_FILENAME).write_text("{}")
        assert find_config_dir(tmp_path) == tmp_path.resolve()

    def test_find_in_parent(self, tmp_path: Path):
        (tmp_path / CONFIG_FILENAME).write_text("{}")
        child = tmp_path / "a" / "b" / "c"
        child.mkdir(parents=True)
        assert find_config_dir(child) == tmp_path.resolve()

    def test_nearest_wins(self, tmp_path: Path):
        (tmp_path / CONFIG_FILENAME).write_text("{}")
        inner = tmp_path / "inner"
        inner.mkdir()
        (inner / CONFIG_FILENAME).write_text("{}")
        assert find_config_dir(inner) == inner.resolve()

    def test_defaults_to_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        (tmp_path / CONFIG_FILENAME).write_text("{}")
        monkeypatch.chdir(tmp_path)
        assert find_config_dir() == tmp_path.resolve()

    def test_not_found(self, tmp_path: Path):
        isolated = tmp_path / "isolated"
        isolated.mkdir()
        with pytest.raises(ConfigNotFoundError, match="devbox init") as exc:
            find_config_dir(isolated)
        assert isinstance(exc.value, UserError)

    def test_not_found_in_cwd_says_this_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigNotFoundError, match="this directory"):
            find_config_dir(".")


class TestSaveConfig:
    def test_round_trip(self, full_devbox_json: Path, tmp_path: Path):
        cfg = load_config(full_devbox_json)
        out = tmp_path / "out" / CONFIG_FILENAME
        save_config(cfg, out)
        assert load_config(out) == cfg

    def test_unset_stages_omitted(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        save_config(Config(packages=["git"]), path)
        assert json.loads(path.read_text()) == {"packages": ["git"]}

    def test_full_rewrite(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text(json.dumps({"packages": ["a", "b", "c"]}))
        save_config(Config(packages=["a"]), path)
        assert json.loads(path.read_text()) == {"packages": ["a"]}
        # no temp files left behind
        assert [p.name for p in tmp_path.iterdir()] == [CONFIG_FILENAME]


class TestInitConfig:
    def test_creates_default(self, tmp_path: Path):
        assert init_config(tmp_path) is True
        assert load_config(tmp_path / CONFIG_FILENAME).to_json_dict() == {"packages": []}

    def test_existing_untouched(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text(json.dumps({"packages": ["git"]}))
        assert init_config(tmp_path) is False
        assert load_config(path).packages == ["git"]


class TestConfigModel:
    def test_add_packages_idempotent(self):
        cfg = Config(packages=["git"])
        assert cfg.add_packages(["git", "curl", "curl"]) == ["curl"]
        assert cfg.add_packages(["git"]) == []
        assert cfg.packages == ["git", "curl"]

    def test_remove_packages(self):
        cfg = Config(packages=["git", "curl"])
        assert cfg.remove_packages(["curl", "nope"]) == ["curl"]
        assert cfg.packages == ["git"]

    def test_remove_absent_is_noop(self):
        cfg = Config(packages=["git"])
        assert cfg.remove_packages(["nonexistent"]) == []
        assert cfg.packages == ["git"]

    def test_blank_command_string_is_absent(self):
        assert Stage(command="  ").command == []


class TestSyncSessionSpec:
    def test_valid(self):
        SyncSessionSpec(alpha_path="/src", beta_path="/remote").validate_paths()

    def test_missing_alpha(self):
        with pytest.raises(MissingFieldError, match="alpha path is required"):
            SyncSessionSpec(beta_path="/remote").validate_paths()

    def test_missing_beta(self):
        with pytest.raises(MissingFieldError) as exc:
            SyncSessionSpec(alpha_path="/src").validate_paths()
        assert exc.value.field == "beta path"


class TestFeatureFlags:
    def test_flakes_disabled_by_default(self):
        assert featureflag.FLAKES.enabled(environ={}) is False

    def test_env_enables(self):
        assert featureflag.FLAKES.enabled(environ={"DEVBOX_FEATURE_FLAKES": "1"}) is True
        assert featureflag.FLAKES.enabled(environ={"DEVBOX_FEATURE_FLAKES": "true"}) is True

    def test_garbage_falls_back_to_default(self):
        assert featureflag.FLAKES.enabled(environ={"DEVBOX_FEATURE_FLAKES": "maybe"}) is False

    def test_lookup(self):
        assert featureflag.get("FLAKES") is featureflag.FLAKES
        with pytest.raises(KeyError):
            featureflag.get("NOPE")

    @pytest.mark.parametrize("raw,expected", [("0", False), ("F", False), ("yes", True), ("", None), (None, None)])
    def test_parse_bool(self, raw, expected):
        assert featureflag.parse_bool(raw) is expected
