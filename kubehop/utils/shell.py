"""Shell command building utilities."""

import shlex


def quote_arg(arg: str) -> str:
    """Safely quote a shell argument.

    Args:
        arg: Argument to quote

    Returns:
        Shell-safe quoted argument
    """
    return shlex.quote(arg)


def sudo(password: str, command: str) -> str:
    """Prefix a command with a non-interactive sudo.

    The password is fed on stdin so it never appears in the process
    argument list of sudo itself.

    Args:
        password: sudo password for the remote user
        command: Command to run as root

    Returns:
        ``echo <password> | sudo -S <command>``
    """
    return f"echo {shlex.quote(password)} | sudo -S {command}"


def heredoc(path: str, body: str, marker: str = "EOL") -> str:
    """Write body to path with a quoted heredoc.

    The quoted marker stops the remote shell from expanding anything
    inside body.

    Args:
        path: Remote file path
        body: File contents
        marker: Heredoc terminator, must not appear alone on a line in body

    Returns:
        ``cat > path << 'MARKER'`` command
    """
    return f"cat > {shlex.quote(path)} << '{marker}'\n{body.rstrip(chr(10))}\n{marker}"


def dq(value: str) -> str:
    """Escape a value for use inside a double-quoted shell string."""
    for char in ("\\", '"', "$", "`"):
        value = value.replace(char, "\\" + char)
    return value
