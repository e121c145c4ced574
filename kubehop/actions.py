"""Names of the registered actions and the longer timeouts some need.

Registrars, the bootstrap workflow and the lifecycle controller all
refer to actions through these constants.
"""

# Kubernetes
INSTALL_FIRST_MASTER = "installFirstMaster"
GET_INSTALL_STATUS = "getInstallStatus"
FETCH_JOIN_CREDENTIALS = "fetchJoinCredentials"
READ_INSTALL_LOG = "readInstallLog"
STOP_INSTALL = "stopInstall"
JOIN_WORKER = "joinWorker"
JOIN_MASTER = "joinMaster"
GET_NODE_STATUS = "getNodeStatus"
GET_NAMESPACE_AND_POD_STATUS = "getNamespaceAndPodStatus"
DRAIN_NODE = "drainNode"
RESET_WORKER_NODE = "resetWorkerNode"
RESET_MASTER_NODE = "resetMasterNode"
REMOVE_ETCD_MEMBER = "removeEtcdMember"
DELETE_WORKER = "deleteWorker"
DELETE_MASTER = "deleteMaster"

# Load balancer
INSTALL_LOAD_BALANCER = "installLoadBalancer"
UPDATE_HAPROXY = "updateHAProxy"
REMOVE_HAPROXY_SERVER = "removeHAProxyServer"

# Docker
INSTALL_DOCKER = "installDocker"
CHECK_DOCKER_STATUS = "checkDockerStatus"
GET_DOCKER_VERSION = "getDockerVersion"
LIST_CONTAINERS = "listContainers"
LIST_IMAGES = "listImages"
RESTART_DOCKER_SERVICE = "restartDockerService"

# Ad-hoc command lists sent without a template
CUSTOM = "custom"

# Seconds allowed for actions that outlast the orchestrator default.
# Teardown budgets cover drain, kubeadm reset and apt-get purge/autoremove.
TIMEOUTS: dict[str, float] = {
    INSTALL_LOAD_BALANCER: 300,
    UPDATE_HAPROXY: 60,
    REMOVE_HAPROXY_SERVER: 60,
    INSTALL_DOCKER: 300,
    DRAIN_NODE: 300,
    REMOVE_ETCD_MEMBER: 90,
    RESET_WORKER_NODE: 300,
    RESET_MASTER_NODE: 360,
    DELETE_WORKER: 600,
    DELETE_MASTER: 810,
}
