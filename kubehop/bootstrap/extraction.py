"""Recover join credentials from free-form kubeadm install output.

kubeadm's closing text is not a stable format, so each credential is
pulled out by an ordered list of heuristics. The first heuristic whose
result is complete wins. Each heuristic is a plain function over the
log lines, testable against fixtures on its own.

The same cascade is rendered as shell in ``kubehop.bootstrap.watcher``
for the detached remote watcher. This module is the local fallback
used when marker files are missing or incomplete.
"""

import logging
import re
from collections.abc import Callable, Sequence
from typing import NamedTuple

from kubehop.models import ExtractedCredential, ExtractionReport

logger = logging.getLogger(__name__)

WORKER_ANCHOR = "Then you can join any number of worker nodes"
CONTROL_PLANE_ANCHOR = "You can now join any number of the control-plane node"
JOIN_KEYWORD = "kubeadm join"

CLEAN_JOIN_RE = re.compile(r"kubeadm join.*?discovery-token-ca-cert-hash sha256:[a-f0-9]+")
TOKEN_FRAGMENT_RE = re.compile(r"kubeadm join \S+ --token \S+")
HASH_FRAGMENT_RE = re.compile(r"discovery-token-ca-cert-hash sha256:[a-f0-9]+")
CERTIFICATE_KEY_RE = re.compile(r"--control-plane --certificate-key [a-zA-Z0-9]+")

Extractor = Callable[[Sequence[str]], str | None]


class Heuristic(NamedTuple):
    """A named extraction strategy."""

    name: str
    extract: Extractor


def _collapse(parts: Sequence[str]) -> str:
    """Join lines, drop continuation backslashes, squeeze whitespace."""
    text = " ".join(parts).replace("\\", " ")
    return " ".join(text.split())


def is_complete_join(command: str | None) -> bool:
    """True when a join command has both the token and the CA hash."""
    if not command:
        return False
    return "--token" in command and HASH_FRAGMENT_RE.search(command) is not None


def clean_join_command(command: str) -> str:
    """Trim anything before ``kubeadm join`` or after the CA hash."""
    match = CLEAN_JOIN_RE.search(command)
    return match.group(0) if match else command.strip()


def from_worker_section(lines: Sequence[str]) -> str | None:
    """Anchor on the worker-join sentence and read the command under it.

    Looks at the 15 lines after the anchor, starts at the first
    ``kubeadm join`` line, takes up to three continuation lines and
    stops at the first blank line.
    """
    for index, line in enumerate(lines):
        if WORKER_ANCHOR in line:
            section = lines[index + 1 : index + 16]
            break
    else:
        return None

    for offset, line in enumerate(section):
        if JOIN_KEYWORD in line:
            picked: list[str] = []
            for candidate in section[offset : offset + 4]:
                if not candidate.strip():
                    break
                if "You can now join" in candidate:
                    continue
                picked.append(candidate)
            return _collapse(picked) or None
    return None


def from_last_join_line(lines: Sequence[str]) -> str | None:
    """Take the last non-control-plane ``kubeadm join`` line and the next one."""
    last = None
    for index, line in enumerate(lines):
        if JOIN_KEYWORD in line and "control-plane" not in line:
            last = index
    if last is None:
        return None
    return _collapse(lines[last : last + 2]) or None


def from_fragments(lines: Sequence[str]) -> str | None:
    """Recombine the last token fragment with its CA hash fragment.

    The hash is searched in the 10 lines after the token fragment first,
    then anywhere in the log.
    """
    token_line = None
    token_part = None
    for index, line in enumerate(lines):
        match = TOKEN_FRAGMENT_RE.search(line.replace("\\", " "))
        if match:
            token_line = index
            token_part = match.group(0)
    if token_part is None or token_line is None:
        return None

    nearby = "\n".join(lines[token_line : token_line + 11])
    hash_match = HASH_FRAGMENT_RE.search(nearby)
    if hash_match is None:
        hash_match = HASH_FRAGMENT_RE.search("\n".join(lines))
        if hash_match is None:
            return None
    hash_part = hash_match.group(0)
    return f"{token_part} --{hash_part}"


def certificate_key_from_section(lines: Sequence[str]) -> str | None:
    """Find the certificate key in the control-plane join section."""
    for index, line in enumerate(lines):
        if CONTROL_PLANE_ANCHOR in line:
            match = CERTIFICATE_KEY_RE.search(_collapse(lines[index : index + 11]))
            if match:
                return match.group(0)
    return None


def certificate_key_anywhere(lines: Sequence[str]) -> str | None:
    """Find the first certificate key fragment anywhere in the log."""
    match = CERTIFICATE_KEY_RE.search(_collapse(lines))
    return match.group(0) if match else None


JOIN_HEURISTICS: tuple[Heuristic, ...] = (
    Heuristic("worker_section", from_worker_section),
    Heuristic("last_join_line", from_last_join_line),
    Heuristic("fragments", from_fragments),
)

CERTIFICATE_HEURISTICS: tuple[Heuristic, ...] = (
    Heuristic("control_plane_section", certificate_key_from_section),
    Heuristic("anywhere", certificate_key_anywhere),
)


def _run_cascade(
    heuristics: Sequence[Heuristic],
    lines: Sequence[str],
    accept: Callable[[str | None], bool],
) -> tuple[str | None, str | None]:
    for heuristic in heuristics:
        result = heuristic.extract(lines)
        if accept(result):
            logger.debug("Heuristic %s matched", heuristic.name)
            return result, heuristic.name
        logger.debug("Heuristic %s gave no usable result", heuristic.name)
    return None, None


def extract_join_command(log_text: str) -> tuple[str | None, str | None]:
    """Run the join-command cascade.

    Args:
        log_text: Raw install log

    Returns:
        (clean join command, heuristic name), or (None, None)
    """
    lines = log_text.splitlines()
    command, name = _run_cascade(JOIN_HEURISTICS, lines, is_complete_join)
    if command is None:
        return None, None
    return clean_join_command(command), name


def extract_certificate_key(log_text: str) -> tuple[str | None, str | None]:
    """Run the certificate-key cascade.

    Args:
        log_text: Raw install log

    Returns:
        (``--control-plane --certificate-key <key>``, heuristic name), or (None, None)
    """
    return _run_cascade(CERTIFICATE_HEURISTICS, log_text.splitlines(), bool)


def extract_credentials(log_text: str) -> ExtractionReport:
    """Extract join credentials from an install log.

    Never raises on malformed input. When no join command is found the
    report carries every line mentioning ``kubeadm join`` for debugging.

    Args:
        log_text: Raw install log

    Returns:
        ExtractionReport with the credential or None
    """
    join_command, join_name = extract_join_command(log_text)
    certificate_key, cert_name = extract_certificate_key(log_text)

    if join_command is None:
        candidates = [line.strip() for line in log_text.splitlines() if JOIN_KEYWORD in line]
        logger.warning(
            "No join command recovered from install log (%d candidate line(s))",
            len(candidates),
        )
        return ExtractionReport(
            certificate_heuristic=cert_name,
            candidates=candidates,
        )

    return ExtractionReport(
        credential=ExtractedCredential(
            join_command=join_command,
            certificate_key=certificate_key,
        ),
        join_heuristic=join_name,
        certificate_heuristic=cert_name,
    )
