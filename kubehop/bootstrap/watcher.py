"""Remote watcher that waits for an install to finish and extracts credentials.

The watcher runs detached on the target host next to the install. It
polls the install log for the completion sentinel, then runs the same
heuristic cascade as ``kubehop.bootstrap.extraction`` in shell and
writes the results to marker files.
"""

import posixpath

from kubehop.bootstrap import paths

DEFAULT_MAX_WAIT = 1800
DEFAULT_POLL_INTERVAL = 10

WATCHER_TIMEOUT_MESSAGE = "watcher timed out waiting for install sentinel"
CERTIFICATE_MISSING_MESSAGE = "certificate key not found in install log"

_JOIN_HASH = "discovery-token-ca-cert-hash sha256:[a-f0-9]+"
_CERT_KEY = "--control-plane --certificate-key [a-zA-Z0-9]+"


def _marker(path: str, output_dir: str | None) -> str:
    if output_dir is None:
        return path
    return posixpath.join(output_dir, posixpath.basename(path))


def render_watcher_script(
    max_wait: int = DEFAULT_MAX_WAIT,
    poll_interval: int = DEFAULT_POLL_INTERVAL,
    install_log: str = paths.INSTALL_LOG,
    sentinel: str = paths.INSTALL_SENTINEL,
    output_dir: str | None = None,
) -> str:
    """Render the watcher as a standalone bash script.

    Args:
        max_wait: Seconds to wait for the sentinel before giving up
        poll_interval: Seconds between sentinel checks
        install_log: Remote path of the install log
        sentinel: Line printed by the install script when it finishes
        output_dir: Directory for the marker files. None keeps the
            standard paths read by getInstallStatus.

    Returns:
        Complete bash script. Exits 0 after extraction, 1 on timeout.
    """
    join_file = _marker(paths.JOIN_COMMAND_FILE, output_dir)
    cert_file = _marker(paths.CERTIFICATE_KEY_FILE, output_dir)
    error_file = _marker(paths.CERTIFICATE_ERROR_FILE, output_dir)
    section_log = _marker(paths.JOIN_SECTION_LOG, output_dir)
    candidates_file = _marker(paths.ALL_JOIN_COMMANDS_FILE, output_dir)
    return f"""#!/bin/bash

LOG="{install_log}"
SENTINEL="{sentinel}"
MAX_WAIT={max_wait}
INTERVAL={poll_interval}

squash() {{
  tr -d '\\\\' | tr '\\n\\t' '  ' | tr -s ' ' | sed -e 's/^ *//' -e 's/ *$//'
}}

is_complete() {{
  echo "$1" | grep -q -- "--token" && echo "$1" | grep -qE -- "{_JOIN_HASH}"
}}

extract_join() {{
  local cmd line token_part hash_part

  cmd=$(grep -A 15 "Then you can join any number of worker nodes" "$LOG" | grep -A 3 "kubeadm join" | grep -v "You can now join" | sed -e '/^[[:space:]]*$/,$d' | squash)
  if is_complete "$cmd"; then
    echo "heuristic worker_section matched" >&2
  else
    line=$(grep -n "kubeadm join" "$LOG" | grep -v "control-plane" | tail -1 | cut -d: -f1)
    if [ -n "$line" ]; then
      cmd=$(sed -n "${{line}},$((line + 1))p" "$LOG" | squash)
    fi
    if is_complete "$cmd"; then
      echo "heuristic last_join_line matched" >&2
    else
      token_part=$(tr -d '\\\\' < "$LOG" | grep -oE -- "kubeadm join [^ ]+ --token [^ ]+" | tail -1)
      if [ -n "$token_part" ]; then
        hash_part=$({{ grep -A 10 -F -- "$token_part" "$LOG"; cat "$LOG"; }} | grep -oE -- "{_JOIN_HASH}" | head -1)
      fi
      if [ -n "$token_part" ] && [ -n "$hash_part" ]; then
        cmd="$token_part --$hash_part"
        echo "heuristic fragments matched" >&2
      fi
    fi
  fi

  if is_complete "$cmd"; then
    echo "$cmd" | grep -oE -- "kubeadm join.*{_JOIN_HASH}" | head -1
  fi
}}

extract_cert() {{
  local cert
  cert=$(grep -A 10 "You can now join any number of the control-plane node" "$LOG" | squash | grep -oE -- "{_CERT_KEY}" | head -1)
  if [ -z "$cert" ]; then
    cert=$(squash < "$LOG" | grep -oE -- "{_CERT_KEY}" | head -1)
  fi
  echo "$cert"
}}

elapsed=0
while [ "$elapsed" -lt "$MAX_WAIT" ]; do
  if grep -qF -- "$SENTINEL" "$LOG" 2>/dev/null; then
    echo "install finished after ~${{elapsed}}s, extracting join credentials"

    grep -A 20 -B 5 "You can now join any number" "$LOG" > {section_log} 2>/dev/null || true
    grep -A 20 -B 5 "worker nodes by running" "$LOG" >> {section_log} 2>/dev/null || true

    join_cmd=$(extract_join)
    if [ -n "$join_cmd" ]; then
      echo "$join_cmd" > {join_file}
      echo "join command extracted"
    else
      echo "# no complete join command recovered" > {candidates_file}
      grep "kubeadm join" "$LOG" >> {candidates_file} 2>/dev/null || true
      echo "join command extraction failed, candidates saved"
    fi

    cert_key=$(extract_cert)
    if [ -n "$cert_key" ]; then
      echo "$cert_key" > {cert_file}
      echo "certificate key extracted"
    else
      echo "{CERTIFICATE_MISSING_MESSAGE}" > {error_file}
      echo "certificate key extraction failed"
    fi
    exit 0
  fi
  sleep "$INTERVAL"
  elapsed=$((elapsed + INTERVAL))
done

echo "{WATCHER_TIMEOUT_MESSAGE} after ${{MAX_WAIT}}s"
echo "{WATCHER_TIMEOUT_MESSAGE}" > {error_file}
exit 1
"""
