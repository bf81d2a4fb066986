"""
Tests for codesearch.core.config — environment loading and location checks.
"""

import os

import pytest

from codesearch.core.config import CodeSearchConfig
from codesearch.exceptions import ConfigurationUnavailable


class TestDefaults:

    def test_defaults(self):
        config = CodeSearchConfig()
        assert config.work_dir is None
        assert config.repo_root_path is None
        assert config.backend_command == "scripts/searchcode"
        assert config.backend_timeout == 10.0
        assert config.max_output_bytes == 4 * 1024 * 1024
        assert config.max_concurrent_searches == 4
        assert config.default_branch == "master"
        assert config.auth_header == "X-WEBAUTH-USER"

    def test_instances_are_independent(self):
        a = CodeSearchConfig()
        b = CodeSearchConfig()
        a.backend_timeout = 1.0
        assert b.backend_timeout == 10.0


class TestFromEnv:

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("CODESEARCH_WORK_DIR", "/srv/gogs")
        monkeypatch.setenv("CODESEARCH_REPO_ROOT", "/srv/repos")
        monkeypatch.setenv("CODESEARCH_BACKEND", "/usr/local/bin/searchcode")
        monkeypatch.setenv("CODESEARCH_TIMEOUT", "2.5")
        monkeypatch.setenv("CODESEARCH_MAX_OUTPUT", "1024")
        monkeypatch.setenv("CODESEARCH_MAX_CONCURRENT", "2")
        monkeypatch.setenv("CODESEARCH_BRANCH", "main")
        monkeypatch.setenv("CODESEARCH_LOG_LEVEL", "debug")

        config = CodeSearchConfig.from_env()
        assert config.work_dir == "/srv/gogs"
        assert config.repo_root_path == "/srv/repos"
        assert config.backend_command == "/usr/local/bin/searchcode"
        assert config.backend_timeout == 2.5
        assert config.max_output_bytes == 1024
        assert config.max_concurrent_searches == 2
        assert config.default_branch == "main"
        assert config.log_level == "DEBUG"

    def test_empty_values_mean_unset(self, monkeypatch):
        monkeypatch.setenv("CODESEARCH_WORK_DIR", "")
        monkeypatch.setenv("CODESEARCH_REPO_ROOT", "")
        config = CodeSearchConfig.from_env()
        assert config.work_dir is None
        assert config.repo_root_path is None


class TestLocations:

    def test_missing_work_dir(self):
        with pytest.raises(ConfigurationUnavailable, match="CODESEARCH_WORK_DIR"):
            CodeSearchConfig().resolve_work_dir()

    def test_nonexistent_work_dir(self, tmp_path):
        config = CodeSearchConfig(work_dir=str(tmp_path / "nope"))
        with pytest.raises(ConfigurationUnavailable, match="does not exist"):
            config.resolve_work_dir()

    def test_backend_resolved_against_work_dir(self, config, make_script, workspace):
        make_script("true")
        path = config.resolve_backend_path()
        assert path == (workspace / "work" / "scripts" / "searchcode").resolve()

    def test_absolute_backend_ignores_work_dir(self, make_script):
        script = make_script("true")
        config = CodeSearchConfig(backend_command=str(script))
        assert config.resolve_backend_path() == script

    def test_missing_backend(self, config):
        with pytest.raises(ConfigurationUnavailable, match="not found"):
            config.resolve_backend_path()

    @pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0,
                        reason="root ignores the executable bit")
    def test_backend_not_executable(self, config, make_script):
        make_script("true").chmod(0o644)
        with pytest.raises(ConfigurationUnavailable, match="not executable"):
            config.resolve_backend_path()

    def test_missing_repo_root(self):
        with pytest.raises(ConfigurationUnavailable, match="CODESEARCH_REPO_ROOT"):
            CodeSearchConfig().resolve_repo_root()

    def test_repo_root_is_absolute(self, config, workspace):
        assert config.resolve_repo_root() == (workspace / "repos").resolve()


class TestValidate:

    def test_valid(self, config, make_script):
        make_script("true")
        assert config.validate() is True

    @pytest.mark.parametrize("field, value, message", [
        ("backend_timeout", 0, "backend_timeout"),
        ("backend_timeout", -1.0, "backend_timeout"),
        ("max_output_bytes", 0, "max_output_bytes"),
        ("max_concurrent_searches", 0, "max_concurrent_searches"),
    ])
    def test_rejects_bad_limits(self, config, make_script, field, value, message):
        make_script("true")
        setattr(config, field, value)
        with pytest.raises(ConfigurationUnavailable, match=message):
            config.validate()

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            CodeSearchConfig().validate()
