"""Tests for configuration resolution, validation and loading."""

from pathlib import Path

import pytest

from pygit_mirror import (
    BufferedOutputHandler,
    ConfigErrorKind,
    ConfigurationError,
    MirrorConfig,
    NullOutputHandler,
    SshConfig,
    build_configs,
    create_argument_parser,
    load_config_file,
    resolve,
    validate,
)


class TestResolveSource:
    def test_explicit_source_kept(self):
        config = resolve(MirrorConfig(src_repo="explicit"), {"SRC_REPO": "env"})
        assert config.src_repo == "explicit"

    def test_source_from_env(self):
        env = {"SRC_REPO": "env", "SERVER_URL": "https://example.com", "REPOSITORY_NAME": "org/repo"}
        assert resolve(MirrorConfig(), env).src_repo == "env"

    def test_source_from_server_url_and_name(self):
        env = {"SERVER_URL": "https://example.com", "REPOSITORY_NAME": "org/repo"}
        assert resolve(MirrorConfig(), env).src_repo == "https://example.com/org/repo"

    def test_concatenation_keeps_duplicate_slashes(self):
        env = {"SERVER_URL": "https://example.com/", "REPOSITORY_NAME": "/org/repo"}
        assert resolve(MirrorConfig(), env).src_repo == "https://example.com///org/repo"

    def test_no_source_anywhere(self):
        assert resolve(MirrorConfig(), {}).src_repo == ""

    def test_empty_src_repo_env_still_wins(self):
        env = {"SRC_REPO": "", "SERVER_URL": "https://example.com", "REPOSITORY_NAME": "org/repo"}
        assert resolve(MirrorConfig(), env).src_repo == ""


class TestResolveDestination:
    def test_explicit_destination_kept(self):
        assert resolve(MirrorConfig(dst_repo="explicit"), {"DST_REPO": "env"}).dst_repo == "explicit"

    def test_destination_from_env(self):
        assert resolve(MirrorConfig(), {"DST_REPO": "env"}).dst_repo == "env"

    def test_destination_never_derived(self):
        env = {"SERVER_URL": "https://example.com", "REPOSITORY_NAME": "org/repo"}
        assert resolve(MirrorConfig(), env).dst_repo == ""


class TestResolveSsh:
    def test_ssh_from_env(self):
        config = resolve(MirrorConfig(), {"SSH_PRIVATE_KEY": "key", "SSH_KNOWN_HOSTS": "hosts"})
        assert config.ssh.private_key == "key"
        assert config.ssh.known_hosts == "hosts"

    def test_ssh_always_overwritten(self):
        config = MirrorConfig(ssh=SshConfig(private_key="old", known_hosts="old"))
        resolved = resolve(config, {})
        assert resolved.ssh.private_key == ""
        assert resolved.ssh.known_hosts == ""

    def test_known_hosts_path_not_from_env(self):
        config = MirrorConfig(ssh=SshConfig(known_hosts_path="/explicit"))
        resolved = resolve(config, {"SSH_KNOWN_HOSTS_PATH": "/env"})
        assert resolved.ssh.known_hosts_path == "/explicit"

    def test_input_not_modified(self):
        config = MirrorConfig()
        resolve(config, {"SRC_REPO": "a", "SSH_PRIVATE_KEY": "key"})
        assert config == MirrorConfig()


class TestResolveDebug:
    @pytest.mark.parametrize("value", ["1", "true", "YES"])
    def test_debug_enabled(self, value):
        assert resolve(MirrorConfig(), {"DEBUG": value}).debug is True

    def test_debug_disabled(self):
        assert resolve(MirrorConfig(), {"DEBUG": "0"}).debug is False

    def test_explicit_debug_not_cleared(self):
        assert resolve(MirrorConfig(debug=True), {}).debug is True


class TestValidate:
    def _validate(self, **kwargs) -> BufferedOutputHandler:
        output = BufferedOutputHandler()
        ssh_fields = {k: kwargs.pop(k) for k in ("private_key", "known_hosts", "known_hosts_path") if k in kwargs}
        validate(MirrorConfig(ssh=SshConfig(**ssh_fields), **kwargs), output)
        return output

    def _kind(self, **kwargs) -> ConfigErrorKind:
        with pytest.raises(ConfigurationError) as excinfo:
            self._validate(**kwargs)
        return excinfo.value.kind

    def test_missing_source(self):
        assert self._kind(src_repo="", dst_repo="x") is ConfigErrorKind.MISSING_SOURCE

    def test_missing_destination(self):
        assert self._kind(src_repo="x", dst_repo="") is ConfigErrorKind.MISSING_DESTINATION

    def test_conflicting_host_key_sources(self):
        kind = self._kind(src_repo="x", dst_repo="x", private_key="k", known_hosts="h", known_hosts_path="p")
        assert kind is ConfigErrorKind.CONFLICTING_HOST_KEY_SOURCES

    def test_missing_host_key_source(self):
        assert self._kind(src_repo="x", dst_repo="x", private_key="k") is ConfigErrorKind.MISSING_HOST_KEY_SOURCE

    def test_no_authentication_warns(self):
        output = self._validate(src_repo="x", dst_repo="x")
        levels = [level for level, _message, _indent in output.messages]
        assert "warning" in levels
        assert any("no authentication" in message for _level, message, _indent in output.messages)

    def test_known_hosts_by_value(self):
        output = self._validate(src_repo="x", dst_repo="x", private_key="k", known_hosts="h")
        assert all(level != "warning" for level, _message, _indent in output.messages)

    def test_known_hosts_by_path(self):
        self._validate(src_repo="x", dst_repo="x", private_key="k", known_hosts_path="p")

    def test_host_keys_ignored_without_private_key(self):
        self._validate(src_repo="x", dst_repo="x", known_hosts="h", known_hosts_path="p")

    def test_logs_resolved_repositories(self):
        output = self._validate(src_repo="https://a", dst_repo="https://b")
        messages = [message for _level, message, _indent in output.messages]
        assert "Source repository: https://a." in messages
        assert "Destination repository: https://b." in messages


class TestArgumentParser:
    def test_defaults(self):
        args = create_argument_parser().parse_args([])
        assert args.source_repository is None
        assert args.destination_repository is None
        assert args.ssh_known_hosts_path is None
        assert args.exclude == []
        assert args.debug is False
        assert args.parallel is False
        assert args.json_output is False

    def test_flags(self):
        args = create_argument_parser().parse_args([
            "--source-repository", "a",
            "--destination-repository", "b",
            "--ssh-known-hosts-path", "/kh",
            "--exclude", "refs/meta",
            "--exclude", "refs/keep",
            "--debug",
        ])
        assert args.source_repository == "a"
        assert args.destination_repository == "b"
        assert args.ssh_known_hosts_path == "/kh"
        assert args.exclude == ["refs/meta", "refs/keep"]
        assert args.debug is True

    def test_version_exits_zero(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            create_argument_parser().parse_args(["--version"])
        assert excinfo.value.code == 0
        assert "pygit-mirror" in capsys.readouterr().out


class TestBuildConfigs:
    def _args(self, *argv):
        return create_argument_parser().parse_args(list(argv))

    def test_cli_over_file_over_env(self):
        args = self._args("--source-repository", "cli-src")
        file_config = {"source": "file-src", "destination": "file-dst"}
        configs = build_configs(args, file_config, {"SRC_REPO": "env-src", "DST_REPO": "env-dst"})
        assert len(configs) == 1
        assert configs[0].src_repo == "cli-src"
        assert configs[0].dst_repo == "file-dst"

    def test_env_fallback(self):
        configs = build_configs(self._args(), {}, {"SRC_REPO": "env-src", "DST_REPO": "env-dst"})
        assert configs[0].src_repo == "env-src"
        assert configs[0].dst_repo == "env-dst"

    def test_exclude_prefixes_extend_default(self):
        args = self._args("--exclude", "refs/meta", "--exclude", "refs/pull")
        configs = build_configs(args, {"exclude_prefixes": ["refs/keep-around"]}, {})
        assert configs[0].exclude_prefixes == ("refs/pull", "refs/keep-around", "refs/meta")

    def test_mirrors_from_file(self):
        file_config = {
            "known_hosts_path": "/default_hosts",
            "mirrors": [
                {"source": "a", "destination": "b"},
                {"source": "c", "destination": "d", "known_hosts_path": "/other_hosts"},
            ],
        }
        configs = build_configs(self._args(), file_config, {"SSH_PRIVATE_KEY": "key"})
        assert [(c.src_repo, c.dst_repo) for c in configs] == [("a", "b"), ("c", "d")]
        assert configs[0].ssh.known_hosts_path == "/default_hosts"
        assert configs[1].ssh.known_hosts_path == "/other_hosts"
        assert all(c.ssh.private_key == "key" for c in configs)

    def test_cli_source_ignores_file_mirrors(self):
        file_config = {"mirrors": [{"source": "a", "destination": "b"}]}
        configs = build_configs(self._args("--source-repository", "x", "--destination-repository", "y"), file_config, {})
        assert [(c.src_repo, c.dst_repo) for c in configs] == [("x", "y")]

    def test_exclude_prefixes_string_is_one_prefix(self):
        configs = build_configs(self._args(), {"exclude_prefixes": "refs/meta"}, {})
        assert configs[0].exclude_prefixes == ("refs/pull", "refs/meta")

    @pytest.mark.parametrize("value", [42, ["refs/meta", 7], {"prefix": "refs/meta"}])
    def test_exclude_prefixes_invalid_shape(self, value):
        with pytest.raises(ConfigurationError) as excinfo:
            build_configs(self._args(), {"exclude_prefixes": value}, {})
        assert excinfo.value.kind is ConfigErrorKind.INVALID_EXCLUDE_PREFIXES

    def test_mirror_exclude_prefixes_extend_top_level(self):
        file_config = {
            "exclude_prefixes": ["refs/meta"],
            "mirrors": [
                {"source": "a", "destination": "b", "exclude_prefixes": "refs/keep-around"},
                {"source": "c", "destination": "d"},
            ],
        }
        configs = build_configs(self._args(), file_config, {})
        assert configs[0].exclude_prefixes == ("refs/pull", "refs/meta", "refs/keep-around")
        assert configs[1].exclude_prefixes == ("refs/pull", "refs/meta")

    def test_mirror_exclude_prefixes_invalid_shape(self):
        file_config = {"mirrors": [{"source": "a", "destination": "b", "exclude_prefixes": 1}]}
        with pytest.raises(ConfigurationError) as excinfo:
            build_configs(self._args(), file_config, {})
        assert excinfo.value.kind is ConfigErrorKind.INVALID_EXCLUDE_PREFIXES

    @pytest.mark.parametrize("value", ["a -> b", ["a -> b"], {"source": "a"}])
    def test_mirrors_invalid_shape(self, value):
        with pytest.raises(ConfigurationError) as excinfo:
            build_configs(self._args(), {"mirrors": value}, {})
        assert excinfo.value.kind is ConfigErrorKind.INVALID_MIRRORS

    def test_debug_from_env(self):
        assert build_configs(self._args(), {}, {"DEBUG": "1"})[0].debug is True


class TestLoadConfigFile:
    def test_loads_from_search_dir(self, tmp_path: Path):
        (tmp_path / ".pygitmirror.toml").write_text('source = "a"\ndestination = "b"\n')
        assert load_config_file(tmp_path) == {"source": "a", "destination": "b"}

    def test_explicit_path(self, tmp_path: Path):
        path = tmp_path / "mirrors.toml"
        path.write_text('[[mirrors]]\nsource = "a"\ndestination = "b"\n')
        assert load_config_file(tmp_path, str(path)) == {"mirrors": [{"source": "a", "destination": "b"}]}

    def test_missing_explicit_path(self, tmp_path: Path):
        assert load_config_file(tmp_path, str(tmp_path / "nope.toml")) == {}

    def test_invalid_toml(self, tmp_path: Path):
        path = tmp_path / "bad.toml"
        path.write_text("this is = = not toml")
        assert load_config_file(tmp_path, str(path)) == {}

    def test_not_found(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        assert load_config_file(tmp_path / "empty") == {}


def test_validate_accepts_null_output():
    validate(MirrorConfig(src_repo="a", dst_repo="b"), NullOutputHandler())
