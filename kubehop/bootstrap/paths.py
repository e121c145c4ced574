"""Remote file layout used by detached installs and joins."""

INSTALL_SCRIPT = "/tmp/install_k8s.sh"
INSTALL_LOG = "/tmp/k8s_install.log"
INSTALL_PID = "/tmp/k8s_install.pid"

WATCHER_SCRIPT = "/tmp/k8s_watch_join.sh"
WATCHER_LOG = "/tmp/extract_join_cmd.log"

JOIN_COMMAND_FILE = "/tmp/k8s_join_command.txt"
CERTIFICATE_KEY_FILE = "/tmp/k8s_certificate_key.txt"
CERTIFICATE_ERROR_FILE = "/tmp/k8s_certificate_key_error.txt"
JOIN_SECTION_LOG = "/tmp/k8s_join_section.log"
ALL_JOIN_COMMANDS_FILE = "/tmp/k8s_all_join_commands.txt"

JOIN_SCRIPT = "/tmp/join_k8s.sh"
JOIN_LOG = "/tmp/k8s_join.log"
JOIN_PID = "/tmp/k8s_join.pid"

INSTALL_SENTINEL = "KUBEHOP_INSTALL_COMPLETE"
JOIN_SENTINEL = "KUBEHOP_JOIN_COMPLETE"

MARKER_FILES = (
    JOIN_COMMAND_FILE,
    CERTIFICATE_KEY_FILE,
    CERTIFICATE_ERROR_FILE,
    JOIN_SECTION_LOG,
    ALL_JOIN_COMMANDS_FILE,
)
