"""SSH authentication material for the transport.

The private key and, when given by value, the known hosts are written to
freshly created temporary files (owner read/write only) that live for the
duration of one `ssh_auth` scope. The resulting `SshAuth` is turned into a
`GIT_SSH_COMMAND` for every authenticated git call.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shlex
import subprocess
import tempfile
from collections.abc import Iterator
from dataclasses import dataclass

from pygit_mirror.errors import AuthSetupError
from pygit_mirror.models import SshConfig

TMP_PRIVATE_KEY_PREFIX = 'pygit-mirror-ssh_key-'
TMP_KNOWN_HOSTS_PREFIX = 'pygit-mirror-known_hosts-'

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SshAuth:
    """Private key plus host-key verification, as seen by ssh"""
    private_key_path: str
    known_hosts_path: str = ''

    def ssh_command(self) -> str:
        """Build the ssh invocation git should use."""
        parts = [
            'ssh',
            '-i', self.private_key_path,
            '-o', 'IdentitiesOnly=yes',
            '-o', 'BatchMode=yes',
            '-o', 'StrictHostKeyChecking=yes',
        ]
        if self.known_hosts_path:
            parts += ['-o', f'UserKnownHostsFile={self.known_hosts_path}']
        return ' '.join(shlex.quote(part) for part in parts)

    def environment(self) -> dict[str, str]:
        """Environment overrides for authenticated git commands."""
        return {'GIT_SSH_COMMAND': self.ssh_command()}


def _write_private_file(stack: contextlib.ExitStack, content: str, prefix: str) -> str:
    """Write content to a new 0600 temp file that is removed when the stack closes."""
    fd, path = tempfile.mkstemp(prefix=prefix)
    stack.callback(_remove_quietly, path)
    with os.fdopen(fd, 'w') as f:
        f.write(content if content.endswith('\n') else content + '\n')
    os.chmod(path, 0o600)
    return path


def _remove_quietly(path: str) -> None:
    with contextlib.suppress(FileNotFoundError):
        os.remove(path)


def _check_private_key(path: str) -> None:
    """Make sure ssh can load the key (no passphrase) by deriving its public half."""
    try:
        subprocess.run(
            ['ssh-keygen', '-y', '-P', '', '-f', path],
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        raise AuthSetupError("failed to setup the SSH key", e.stderr.strip() or e) from e
    except FileNotFoundError as e:
        raise AuthSetupError("failed to setup the SSH key", "ssh-keygen not found") from e


@contextlib.contextmanager
def ssh_auth(ssh: SshConfig) -> Iterator[SshAuth | None]:
    """Yield the AuthMethod for a configuration, or None when no key is configured.

    Temporary files created here are removed when the scope exits, whatever
    the outcome of the body.
    """
    if not ssh.private_key:
        yield None
        return

    with contextlib.ExitStack() as stack:
        logger.debug("Using SSH authentication.")
        try:
            key_path = _write_private_file(stack, ssh.private_key, TMP_PRIVATE_KEY_PREFIX)
        except OSError as e:
            raise AuthSetupError("error writing SSH key tmp file", e) from e
        _check_private_key(key_path)

        known_hosts_path = ssh.known_hosts_path
        if ssh.known_hosts:
            try:
                known_hosts_path = _write_private_file(stack, ssh.known_hosts, TMP_KNOWN_HOSTS_PREFIX)
            except OSError as e:
                raise AuthSetupError("error creating known_hosts tmp file", e) from e
        elif known_hosts_path and not os.path.isfile(known_hosts_path):
            raise AuthSetupError("failed to set up host keys", f"{known_hosts_path} does not exist")

        yield SshAuth(key_path, known_hosts_path)
