"""Rendering of the self-contained node install and join scripts.

Each script is plain bash executed detached under sudo. Scripts print a
sentinel line as their very last action so a watcher can tell a
finished run from one still in progress.
"""

from kubehop.bootstrap.paths import INSTALL_SENTINEL, JOIN_SENTINEL
from kubehop.utils.shell import dq

DEFAULT_POD_NETWORK_CIDR = "10.10.0.0/16"
LOAD_BALANCER_PORT = 6444
CALICO_MANIFEST = "https://raw.githubusercontent.com/projectcalico/calico/v3.25.0/manifests/calico.yaml"
INGRESS_MANIFEST = (
    "https://raw.githubusercontent.com/kubernetes/ingress-nginx/main/deploy/static/provider/kind/deploy.yaml"
)

# Ubuntu release floor -> Kubernetes minor version, newest first.
KUBERNETES_VERSIONS: tuple[tuple[str, str], ...] = (
    ("22.04", "1.30"),
    ("20.04", "1.29"),
    ("18.04", "1.24"),
)
FALLBACK_KUBERNETES_VERSION = "1.19"


def kubernetes_version_for(ubuntu_release: str) -> str:
    """Pick the Kubernetes minor version the script installs on a release.

    Mirrors the selection the rendered script performs remotely with bc.

    Args:
        ubuntu_release: Output of ``lsb_release -rs``, e.g. "22.04"

    Returns:
        Kubernetes minor version such as "1.30"
    """
    try:
        release = float(ubuntu_release)
    except ValueError:
        return FALLBACK_KUBERNETES_VERSION
    for floor, version in KUBERNETES_VERSIONS:
        if release >= float(floor):
            return version
    return FALLBACK_KUBERNETES_VERSION


def _version_selection() -> str:
    branches = []
    for index, (floor, version) in enumerate(KUBERNETES_VERSIONS):
        keyword = "if" if index == 0 else "elif"
        branches.append(
            f'{keyword} [ "$(echo "$UBUNTU_VERSION >= {floor}" | bc)" -eq 1 ]; then\n'
            f'  K8S_VERSION="{version}"'
        )
    branches.append(f'else\n  K8S_VERSION="{FALLBACK_KUBERNETES_VERSION}"\nfi')
    return "\n".join(branches)


def _prelude(port: int, lb_ip: str, server_name: str) -> str:
    """Common node preparation: addressing, runtime and kube packages."""
    return f"""#!/bin/bash

set -euxo pipefail

PORT="{port}"
echo "API server port: $PORT"

local_ip=$(ip -4 addr show | awk '/inet / && $2 ~ /^192/ {{print $2}}' | cut -d/ -f1 | head -n 1)
if [ -z "$local_ip" ]; then
  local_ip=$(hostname -I | awk '{{print $1}}')
fi
echo "Local IP: $local_ip"

LB_IP="{dq(lb_ip)}"
if [ -z "$LB_IP" ]; then
  LB_IP=$local_ip
  echo "No load balancer IP given, using local IP"
fi
echo "Load balancer IP: $LB_IP"

SERVER_NAME="{dq(server_name)}"
if [ -z "$SERVER_NAME" ]; then
  SERVER_NAME=$(hostname)
fi
echo "Node name: $SERVER_NAME"

CURRENT_USER=$(whoami)
USER_HOME=$(eval echo ~$CURRENT_USER)

UBUNTU_VERSION=$(lsb_release -rs)
echo "Ubuntu release: $UBUNTU_VERSION"
{_version_selection()}
echo "Kubernetes version: $K8S_VERSION"

sudo swapoff -a
(crontab -l 2>/dev/null; echo "@reboot /sbin/swapoff -a") | crontab - || true

sudo apt-get update -y
sudo apt-get install -y curl apt-transport-https ca-certificates gnupg lsb-release bc jq

cat <<MODULES | sudo tee /etc/modules-load.d/containerd.conf
overlay
br_netfilter
MODULES
sudo modprobe overlay
sudo modprobe br_netfilter

cat <<SYSCTL | sudo tee /etc/sysctl.d/99-kubernetes-cri.conf
net.bridge.bridge-nf-call-iptables  = 1
net.ipv4.ip_forward                 = 1
net.bridge.bridge-nf-call-ip6tables = 1
SYSCTL
sudo sysctl --system

sudo apt-get install -y containerd
sudo mkdir -p /etc/containerd
containerd config default | sudo tee /etc/containerd/config.toml > /dev/null
sudo sed -i 's/SystemdCgroup = false/SystemdCgroup = true/g' /etc/containerd/config.toml
sudo systemctl restart containerd
sudo systemctl enable containerd
echo "containerd installed"

sudo mkdir -p /etc/apt/keyrings
curl -fsSL https://pkgs.k8s.io/core:/stable:/v$K8S_VERSION/deb/Release.key | sudo gpg --batch --yes --dearmor -o /etc/apt/keyrings/kubernetes-apt-keyring.gpg
sudo chmod a+r /etc/apt/keyrings/kubernetes-apt-keyring.gpg
echo "deb [signed-by=/etc/apt/keyrings/kubernetes-apt-keyring.gpg] https://pkgs.k8s.io/core:/stable:/v$K8S_VERSION/deb/ /" | sudo tee /etc/apt/sources.list.d/kubernetes.list

sudo apt-get update -y || true
export DEBIAN_FRONTEND=noninteractive
sudo DEBIAN_FRONTEND=noninteractive apt-get install -y \\
  -o Dpkg::Options::="--force-confdef" -o Dpkg::Options::="--force-confold" \\
  kubelet kubeadm kubectl
sudo apt-mark hold kubelet kubeadm kubectl
sudo systemctl enable kubelet

echo "KUBELET_EXTRA_ARGS=--node-ip=$local_ip" | sudo tee /etc/default/kubelet

if netstat -tuln 2>/dev/null | grep ":$PORT " > /dev/null; then
  echo "WARNING: port $PORT is already in use"
  sudo lsof -i :$PORT || true
fi

sudo kubeadm config images pull
echo "Preflight images pulled"
"""


def _kubeconfig_setup() -> str:
    return """
mkdir -p $USER_HOME/.kube
sudo cp -f /etc/kubernetes/admin.conf $USER_HOME/.kube/config
sudo chown $(id -u $CURRENT_USER):$(id -g $CURRENT_USER) $USER_HOME/.kube/config
export KUBECONFIG=$USER_HOME/.kube/config
grep -q 'KUBECONFIG=' $USER_HOME/.bashrc || echo 'export KUBECONFIG=$HOME/.kube/config' >> $USER_HOME/.bashrc

kubectl taint nodes --all node-role.kubernetes.io/control-plane- || true
kubectl taint nodes --all node-role.kubernetes.io/master- || true
"""


def _join_invocation(join_command: str, certificate_key: str = "") -> str:
    return f"""
JOIN_CMD="{dq(join_command)}"
CERT_KEY="{dq(certificate_key)}"
if [ -n "$CERT_KEY" ]; then
  JOIN_CMD="$JOIN_CMD $CERT_KEY"
fi
if ! echo "$JOIN_CMD" | grep -q -- "--node-name"; then
  JOIN_CMD="$JOIN_CMD --node-name=$SERVER_NAME"
fi
JOIN_CMD=$(echo "$JOIN_CMD" | tr -d '\\\\')
echo "Join command: $JOIN_CMD"
sudo $JOIN_CMD
"""


def render_master_install_script(
    port: int,
    lb_ip: str,
    server_name: str,
    pod_network_cidr: str = DEFAULT_POD_NETWORK_CIDR,
) -> str:
    """Render the first control-plane install script.

    The script initializes the cluster behind the load balancer
    endpoint, installs the CNI and ingress controller, and prints
    INSTALL_SENTINEL as its final line.

    Args:
        port: API server port checked before init
        lb_ip: Load balancer address. Empty means use the node's own IP.
        server_name: Kubernetes node name. Empty means use the hostname.
        pod_network_cidr: Pod network passed to kubeadm init

    Returns:
        Complete bash script
    """
    return (
        _prelude(port, lb_ip, server_name)
        + f"""
POD_CIDR="{dq(pod_network_cidr or DEFAULT_POD_NETWORK_CIDR)}"
sudo kubeadm init --pod-network-cidr=$POD_CIDR --node-name "$SERVER_NAME" --control-plane-endpoint "$LB_IP:{LOAD_BALANCER_PORT}" --upload-certs
"""
        + _kubeconfig_setup()
        + f"""
echo "Waiting for the API server"
sleep 30

curl -fsSL -o /tmp/calico.yaml {CALICO_MANIFEST}
kubectl apply -f /tmp/calico.yaml

curl -fsSL -o /tmp/ingress-nginx.yaml {INGRESS_MANIFEST}
kubectl apply -f /tmp/ingress-nginx.yaml
kubectl label node "$SERVER_NAME" ingress-ready=true --overwrite || true
kubectl wait --namespace ingress-nginx \\
  --for=condition=ready pod \\
  --selector=app.kubernetes.io/component=controller \\
  --timeout=180s || true

echo "Control plane ready. Use: export KUBECONFIG=$USER_HOME/.kube/config"
echo "{INSTALL_SENTINEL}"
"""
    )


def render_master_join_script(
    port: int,
    lb_ip: str,
    server_name: str,
    join_command: str,
    certificate_key: str,
) -> str:
    """Render the script that joins an additional control-plane node.

    Args:
        port: API server port checked before joining
        lb_ip: Load balancer address
        server_name: Kubernetes node name
        join_command: Worker join command extracted from the first master
        certificate_key: ``--control-plane --certificate-key ...`` fragment

    Returns:
        Complete bash script ending with JOIN_SENTINEL
    """
    return (
        _prelude(port, lb_ip, server_name)
        + _join_invocation(join_command, certificate_key)
        + _kubeconfig_setup()
        + f'\necho "{JOIN_SENTINEL}"\n'
    )


def render_worker_join_script(server_name: str, join_command: str) -> str:
    """Render the script that joins a worker node.

    Args:
        server_name: Kubernetes node name
        join_command: Worker join command extracted from the first master

    Returns:
        Complete bash script ending with JOIN_SENTINEL
    """
    return (
        _prelude(6443, "", server_name)
        + _join_invocation(join_command)
        + f'\necho "{JOIN_SENTINEL}"\n'
    )
