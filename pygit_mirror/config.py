"""Configuration: environment resolution, validation, argument parser and config file loader."""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from pygit_mirror.errors import ConfigErrorKind, ConfigurationError
from pygit_mirror.models import DEFAULT_EXCLUDE_PREFIXES, MirrorConfig, SshConfig
from pygit_mirror.protocols import OutputHandler

try:
    import tomllib
except ModuleNotFoundError:
    try:
        import tomli as tomllib  # type: ignore[no-redef]
    except ImportError:
        tomllib = None  # type: ignore[assignment]

ENV_SRC_REPO = 'SRC_REPO'
ENV_SERVER_URL = 'SERVER_URL'
ENV_REPOSITORY_NAME = 'REPOSITORY_NAME'
ENV_DST_REPO = 'DST_REPO'
ENV_SSH_PRIVATE_KEY = 'SSH_PRIVATE_KEY'
ENV_SSH_KNOWN_HOSTS = 'SSH_KNOWN_HOSTS'
ENV_DEBUG = 'DEBUG'

ENV_VARS = (
    ENV_SRC_REPO,
    ENV_SERVER_URL,
    ENV_REPOSITORY_NAME,
    ENV_DST_REPO,
    ENV_SSH_PRIVATE_KEY,
    ENV_SSH_KNOWN_HOSTS,
    ENV_DEBUG,
)

CONFIG_FILE_NAME = '.pygitmirror.toml'

logger = logging.getLogger(__name__)

ResolverStep = Callable[[MirrorConfig, Mapping[str, str]], MirrorConfig]


def _resolve_src_repo(config: MirrorConfig, env: Mapping[str, str]) -> MirrorConfig:
    if config.src_repo:
        return config
    if ENV_SRC_REPO in env:
        return config.with_updates(src_repo=env[ENV_SRC_REPO])
    if ENV_SERVER_URL not in env and ENV_REPOSITORY_NAME not in env:
        return config
    # Plain concatenation: duplicate or missing slashes are kept as given.
    server_url = env.get(ENV_SERVER_URL, '')
    repository = env.get(ENV_REPOSITORY_NAME, '')
    return config.with_updates(src_repo=server_url + '/' + repository)


def _resolve_dst_repo(config: MirrorConfig, env: Mapping[str, str]) -> MirrorConfig:
    if config.dst_repo:
        return config
    return config.with_updates(dst_repo=env.get(ENV_DST_REPO, ''))


def _resolve_ssh(config: MirrorConfig, env: Mapping[str, str]) -> MirrorConfig:
    # Secrets only ever come from the environment, even when that means empty.
    ssh = config.ssh.with_updates(
        private_key=env.get(ENV_SSH_PRIVATE_KEY, ''),
        known_hosts=env.get(ENV_SSH_KNOWN_HOSTS, ''),
    )
    return config.with_updates(ssh=ssh)


def _resolve_debug(config: MirrorConfig, env: Mapping[str, str]) -> MirrorConfig:
    if config.debug:
        return config
    return config.with_updates(debug=env.get(ENV_DEBUG, '').strip().lower() in ('1', 'true', 'yes'))


RESOLVER_STEPS: tuple[ResolverStep, ...] = (
    _resolve_src_repo,
    _resolve_dst_repo,
    _resolve_ssh,
    _resolve_debug,
)


def resolve(config: MirrorConfig, env: Mapping[str, str]) -> MirrorConfig:
    """Fill in or override configuration fields from environment variables."""
    for step in RESOLVER_STEPS:
        config = step(config, env)
    return config


def validate(config: MirrorConfig, output: OutputHandler) -> None:
    """Raise ConfigurationError if the configuration cannot be used for mirroring."""
    if not config.src_repo:
        raise ConfigurationError(ConfigErrorKind.MISSING_SOURCE)
    output.info(f"Source repository: {config.src_repo}.")

    if not config.dst_repo:
        raise ConfigurationError(ConfigErrorKind.MISSING_DESTINATION)
    output.info(f"Destination repository: {config.dst_repo}.")

    ssh = config.ssh
    if not ssh.private_key:
        output.warning("Tool configured with no authentication.")
        return
    if ssh.known_hosts and ssh.known_hosts_path:
        raise ConfigurationError(ConfigErrorKind.CONFLICTING_HOST_KEY_SOURCES)
    if not ssh.known_hosts and not ssh.known_hosts_path:
        raise ConfigurationError(ConfigErrorKind.MISSING_HOST_KEY_SOURCE)


def create_argument_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all pygit-mirror flags."""
    # Lazy import to avoid circular dependency with __init__.py
    from pygit_mirror import __version__

    parser = argparse.ArgumentParser(
        prog='pygit-mirror',
        description="Mirror all references of a git repository into another one",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Environment variables:
  {ENV_SRC_REPO}
  {ENV_SERVER_URL}, {ENV_REPOSITORY_NAME}
      The source repository, in descending order of precedence: the
      --source-repository flag, {ENV_SRC_REPO}, or
      {ENV_SERVER_URL}/{ENV_REPOSITORY_NAME}.
  {ENV_DST_REPO}
      Same as --destination-repository but overridden by the flag.
  {ENV_SSH_PRIVATE_KEY}
      SSH private key used for the destination. When set, host public keys
      are required: {ENV_SSH_KNOWN_HOSTS} or --ssh-known-hosts-path.
  {ENV_SSH_KNOWN_HOSTS}
      Host public keys in known_hosts format. Can't be combined with
      --ssh-known-hosts-path.
  {ENV_DEBUG}
      Set to 1 to run in debug mode.

Examples:
  %(prog)s --source-repository https://example.com/a.git \\
           --destination-repository git@example.org:b.git
  %(prog)s --config mirrors.toml --parallel
        """
    )

    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--source-repository', default=None,
                       help='Source repository of the mirror')
    parser.add_argument('--destination-repository', default=None,
                       help='Destination repository of the mirror')
    parser.add_argument('--ssh-known-hosts-path', default=None,
                       help=f'Path to a known_hosts file (alternative to {ENV_SSH_KNOWN_HOSTS})')
    parser.add_argument('--exclude', action='append', default=[],
                       help='Extra reference prefix to leave out (can specify multiple)')
    parser.add_argument('--debug', action='store_true',
                       help=f'Debug output (also enabled by {ENV_DEBUG}=1)')
    parser.add_argument('--parallel', action='store_true',
                       help='Mirror the configured pairs in parallel')
    parser.add_argument('--max-workers', type=int, default=min(os.cpu_count() or 4, 8),
                       help='Max parallel workers (default: min(cpu_count, 8))')
    parser.add_argument('--json', dest='json_output', action='store_true',
                       help='Output results as JSON (suppresses normal output)')
    parser.add_argument('--config', type=str, default=None,
                       help=f'Path to config file (default: {CONFIG_FILE_NAME} in cwd or home)')

    return parser


def load_config_file(search_dir: Path, config_path: str | None = None) -> dict[str, Any]:
    """Load .pygitmirror.toml from explicit path, search dir, or home dir.

    Returns empty dict if not found or tomllib is unavailable.
    """
    candidates = [Path(config_path)] if config_path else [search_dir / CONFIG_FILE_NAME, Path.home() / CONFIG_FILE_NAME]
    for path in candidates:
        if path.is_file():
            if tomllib is None:
                logger.warning("Found %s but tomllib/tomli not available (Python 3.11+ or pip install tomli). Ignoring.", path)
                return {}
            try:
                with open(path, 'rb') as f:
                    return tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.warning("Failed to parse %s: %s", path, e)
                return {}
    if config_path:
        logger.warning("Config file '%s' not found. Ignoring.", config_path)
    return {}


def _effective(cli_value: str | None, file_config: Mapping[str, Any], key: str) -> str:
    if cli_value is not None:
        return cli_value
    return str(file_config.get(key, ''))


def _exclude_prefixes(value: Any) -> list[str]:
    """Read the `exclude_prefixes` config key. A single string is one prefix."""
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(prefix, str) for prefix in value):
        raise ConfigurationError(ConfigErrorKind.INVALID_EXCLUDE_PREFIXES)
    return value


def _mirror_pairs(value: Any) -> list[Mapping[str, Any]]:
    if not isinstance(value, list) or not all(isinstance(pair, Mapping) for pair in value):
        raise ConfigurationError(ConfigErrorKind.INVALID_MIRRORS)
    return value


def build_configs(
    args: argparse.Namespace,
    file_config: Mapping[str, Any],
    env: Mapping[str, str],
) -> list[MirrorConfig]:
    """Combine CLI flags, config file and environment into resolved mirror configurations.

    A `[[mirrors]]` array in the config file yields one configuration per
    entry, unless source or destination were given on the command line.
    """
    exclude = [*DEFAULT_EXCLUDE_PREFIXES, *_exclude_prefixes(file_config.get('exclude_prefixes', [])), *args.exclude]
    base = MirrorConfig(
        src_repo=_effective(args.source_repository, file_config, 'source'),
        dst_repo=_effective(args.destination_repository, file_config, 'destination'),
        ssh=SshConfig(known_hosts_path=_effective(args.ssh_known_hosts_path, file_config, 'known_hosts_path')),
        debug=args.debug or bool(file_config.get('debug', False)),
        exclude_prefixes=tuple(dict.fromkeys(exclude)),
    )

    pairs = _mirror_pairs(file_config.get('mirrors') or [])
    if not pairs or args.source_repository or args.destination_repository:
        return [resolve(base, env)]

    configs = []
    for pair in pairs:
        ssh = base.ssh.with_updates(known_hosts_path=str(pair.get('known_hosts_path', base.ssh.known_hosts_path)))
        config = base.with_updates(
            src_repo=str(pair.get('source', '')),
            dst_repo=str(pair.get('destination', '')),
            ssh=ssh,
            exclude_prefixes=tuple(dict.fromkeys([
                *base.exclude_prefixes, *_exclude_prefixes(pair.get('exclude_prefixes', [])),
            ])),
        )
        configs.append(resolve(config, env))
    return configs
