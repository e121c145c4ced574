"""Docker engine actions.

Every action runs docker through sudo, so each one needs the remote
user's password. Install output is appended to log files under /tmp
and read back by the final commands of the list.
"""

from kubehop import actions
from kubehop.commands.common import get_str, require
from kubehop.models import CommandTemplate, Params
from kubehop.services.registry import CommandRegistry
from kubehop.utils.shell import sudo

INSTALL_LOG = "/tmp/docker_install.log"
RETRY_LOG = "/tmp/docker_install_retry.log"
RESTART_LOG = "/tmp/docker_restart.log"
GET_DOCKER_URL = "https://get.docker.com"
GET_DOCKER_SCRIPT = "/tmp/get-docker.sh"

JSON_LINES = "'{{json .}}'"
DOCKER_NOT_FOUND = "DOCKER_NOT_FOUND"
INSTALL_ATTEMPTED = "docker install attempt finished"


def _either(password: str, first: str, second: str, log: str) -> str:
    """Run ``first``, falling back to ``second``, both appending to log."""
    return f"{sudo(password, first)} >> {log} 2>&1 || {sudo(password, second)} >> {log} 2>&1"


def _service_status(password: str) -> str:
    return (
        f"{sudo(password, 'systemctl status docker')} 2>/dev/null"
        f" || {sudo(password, 'service docker status')} 2>/dev/null"
        " || echo 'docker service status unavailable'"
    )


def build_install_docker(params: Params) -> list[str]:
    """Install Docker with the convenience script, then retry from packages.

    The retry block is harmless when the first attempt worked: it only
    reinstalls packages that are already present.
    """
    password = get_str(params, "password")

    def run(command: str, log: str = INSTALL_LOG, tolerant: bool = False) -> str:
        line = f"{sudo(password, command)} >> {log} 2>&1"
        return f"{line} || true" if tolerant else line

    prep = [
        f"{sudo(password, 'apt-get update')} > {INSTALL_LOG} 2>&1",
        run("apt-get install -y ca-certificates curl gnupg software-properties-common apt-transport-https"),
        run("apt-get -f install", tolerant=True),
        run("dpkg --configure -a", tolerant=True),
    ]
    install = [
        run(
            "rm -f /etc/apt/sources.list.d/docker.list /etc/apt/keyrings/docker.gpg"
            " /etc/apt/keyrings/docker.asc /tmp/docker.gpg",
            tolerant=True,
        ),
        run("apt-get remove -y docker docker-engine docker.io containerd runc", tolerant=True),
        run("apt-get autoremove -y", tolerant=True),
        run("apt-get update", tolerant=True),
        run(f"curl -fsSL {GET_DOCKER_URL} -o {GET_DOCKER_SCRIPT}"),
        run(f"sh {GET_DOCKER_SCRIPT}"),
        _either(password, "systemctl start docker", "service docker start", INSTALL_LOG) + " || true",
        _either(password, "systemctl enable docker", "service docker enable", INSTALL_LOG) + " || true",
        run("groupadd -f docker"),
        run("usermod -aG docker $(whoami)"),
        f"echo '{INSTALL_ATTEMPTED}' >> {INSTALL_LOG}",
        f"{sudo(password, 'docker --version')} >> {INSTALL_LOG} 2>&1"
        f" || echo 'docker command failed' >> {INSTALL_LOG}",
    ]
    retry = [
        run("apt-get update", RETRY_LOG, tolerant=True),
        run("apt-get upgrade -y", RETRY_LOG, tolerant=True),
        run(
            "apt-get install -y docker-ce docker-ce-cli containerd.io docker-compose-plugin",
            RETRY_LOG,
            tolerant=True,
        ),
        run("systemctl start docker", RETRY_LOG, tolerant=True),
        run("systemctl enable docker", RETRY_LOG, tolerant=True),
    ]
    checks = [
        f"{sudo(password, 'docker --version')} 2>/dev/null || echo '{DOCKER_NOT_FOUND}'",
        f"{sudo(password, f'cat {INSTALL_LOG}')} || echo 'install log unreadable'",
        f"{sudo(password, f'cat {RETRY_LOG}')} 2>/dev/null || echo 'no retry log'",
        _service_status(password),
    ]
    return prep + install + retry + checks


def build_check_docker_status(params: Params) -> list[str]:
    password = get_str(params, "password")
    return [
        f"{sudo(password, 'docker --version')} 2>/dev/null || echo '{DOCKER_NOT_FOUND}'",
        _service_status(password),
        f"{sudo(password, 'docker info')} 2>/dev/null || echo 'DOCKER_INFO_FAILED'",
        f"{sudo(password, 'docker ps -a')} 2>/dev/null | grep -v CONTAINER | wc -l || echo '0'",
    ]


def build_get_docker_version(params: Params) -> list[str]:
    password = get_str(params, "password")
    return [
        f"{sudo(password, 'docker --version')} 2>/dev/null || echo '{DOCKER_NOT_FOUND}'",
        f"{sudo(password, 'docker version')} 2>/dev/null || echo 'DOCKER_VERSION_FAILED'",
    ]


def build_list_containers(params: Params) -> list[str]:
    """One JSON object per line, as printed by ``docker ps --format``."""
    password = get_str(params, "password")
    return [
        sudo(password, "docker ps -a --format " + JSON_LINES) + " 2>/dev/null || echo 'DOCKER_PS_FAILED'",
    ]


def build_list_images(params: Params) -> list[str]:
    password = get_str(params, "password")
    return [
        sudo(password, "docker images --format " + JSON_LINES) + " 2>/dev/null || echo 'DOCKER_IMAGES_FAILED'",
    ]


def build_restart_docker_service(params: Params) -> list[str]:
    password = get_str(params, "password")
    return [
        _either(password, "systemctl restart docker", "service docker restart", RESTART_LOG),
        f"{sudo(password, 'docker info')} 2>/dev/null || echo 'DOCKER_INFO_FAILED'",
    ]


def register_docker_commands(registry: CommandRegistry) -> None:
    """Register the Docker actions.

    Args:
        registry: Registry to populate
    """
    needs_password = require("password")
    for action, build, description in (
        (actions.INSTALL_DOCKER, build_install_docker, "Install Docker Engine"),
        (actions.CHECK_DOCKER_STATUS, build_check_docker_status, "Docker version, service and container count"),
        (actions.GET_DOCKER_VERSION, build_get_docker_version, "Client and server versions"),
        (actions.LIST_CONTAINERS, build_list_containers, "All containers as JSON lines"),
        (actions.LIST_IMAGES, build_list_images, "All images as JSON lines"),
        (actions.RESTART_DOCKER_SERVICE, build_restart_docker_service, "Restart the Docker daemon"),
    ):
        registry.register(
            action,
            CommandTemplate(
                validate=needs_password,
                build=build,
                description=description,
                timeout=actions.TIMEOUTS.get(action),
            ),
        )
