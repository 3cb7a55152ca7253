# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/config/models.py

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field


class GcpProjectConfig(BaseModel):
    project_id: str = "kubecon-eu-2023-apiserver"
    org_id: str = "775566979306"
    billing_account: Optional[str] = "0183E5-447B34-776DEB"
    labels: Dict[str, str] = Field(
        default_factory=lambda: {"tetrate_owner": "liam", "tetrate_team": "devrel"}
    )
    region: str = "us-central1"
    zone_suffix: str = "b"
    subnet_cidr: str = "10.0.1.0/24"
    firewall_ports: List[str] = Field(default_factory=lambda: ["22", "80"])

    @property
    def zone(self) -> str:
        return f"{self.region}-{self.zone_suffix}"


class IstioConfig(BaseModel):
    version: str = "1.17.2"
    repo: str = "https://istio-release.storage.googleapis.com/charts"
    namespace: str = "istio-system"
    mesh_id: str = "mesh"


class ClusterSpec(BaseModel):
    name: str = "controlplane"     # Istio clusterID of the GKE cluster
    network: str = "kube-network"  # mesh network the cluster sits on


class WorkloadConfig(BaseModel):
    """An out-of-cluster VM joining the mesh."""

    name: str = "test"
    namespace: str = "onprem"
    network: str = "vm-network"
    user: str = "istio"
    machine_type: str = "f1-micro"
    image: str = "ubuntu-2204-jammy-v20230302"
    app_image: str = "ghcr.io/chinaran/go-httpbin:1.4-alpine3.17"
    # Writes the VM's private key in plain text next to the bundle. Handy
    # for `ssh -i workloads/<name>/key`, unsafe anywhere shared.
    write_debug_snapshot: bool = True
    # Bound on each remote step (docker install, sidecar, copies).
    remote_timeout: str = "30m"


class DemoConfig(BaseModel):
    gcp: GcpProjectConfig = Field(default_factory=GcpProjectConfig)
    istio: IstioConfig = Field(default_factory=IstioConfig)
    cluster: ClusterSpec = Field(default_factory=ClusterSpec)
    workloads: List[WorkloadConfig] = Field(default_factory=lambda: [WorkloadConfig()])
    # Console verbosity; the log file always keeps DEBUG.
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
