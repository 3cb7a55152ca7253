# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/mesh/program.py

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict

import pulumi
import pulumi_gcp as gcp
import pulumi_kubernetes as k8s
from pulumi_command import local

from ..config.models import DemoConfig
from ..stack import StackSettings
from . import istio as mesh
from .kubeconfig import gke_kubeconfig
from .workload import VmService, VmServiceArgs

KUBECONFIG_FILE = "kubeconfig"


@dataclass
class DemoEnvironment:
    cluster: gcp.container.Cluster
    kubeconfig: local.Command
    istio_namespace: k8s.core.v1.Namespace
    releases: Dict[str, k8s.helm.v3.Release]
    firewall: gcp.compute.Firewall
    namespaces: Dict[str, k8s.core.v1.Namespace] = field(default_factory=dict)
    workloads: Dict[str, VmService] = field(default_factory=dict)


def declare_environment(cfg: DemoConfig, work_dir: Path) -> DemoEnvironment:
    """The demo environment: GKE control plane, Istio, and the VM workloads."""
    g = cfg.gcp
    istio = cfg.istio
    kubeconfig_file = str(work_dir / KUBECONFIG_FILE)

    project = gcp.organizations.Project(
        "project",
        project_id=g.project_id,
        org_id=g.org_id,
        billing_account=g.billing_account,
        labels=g.labels,
    ).project_id

    container_api = gcp.projects.Service("gke", project=project, service="container.googleapis.com")

    network = gcp.compute.Network("network", project=project, auto_create_subnetworks=False)
    subnet = gcp.compute.Subnetwork(
        "subnet",
        project=project,
        region=g.region,
        ip_cidr_range=g.subnet_cidr,
        network=network.id,
    )

    cluster = gcp.container.Cluster(
        "cluster",
        name=cfg.cluster.name,
        project=project,
        location=g.region,
        enable_autopilot=True,
        ip_allocation_policy=gcp.container.ClusterIpAllocationPolicyArgs(),
        deletion_protection=False,
        opts=pulumi.ResourceOptions(depends_on=[container_api]),
    )

    kubeconfig = gke_kubeconfig(
        project=project,
        cluster_name=cluster.name,
        endpoint=cluster.endpoint,
        ca_data=cluster.master_auth.cluster_ca_certificate,
    )

    # Rewritten on every run so a rotated endpoint or CA is picked up.
    kc = local.Command(
        "kc",
        create=f'echo "$KUBECONFIG" > "{kubeconfig_file}"',
        delete=f'rm -f "{kubeconfig_file}"',
        environment={"KUBECONFIG": kubeconfig},
        triggers=[time.time_ns()],
        opts=pulumi.ResourceOptions(delete_before_replace=True),
    )

    k8s_provider = k8s.Provider("k8s", kubeconfig=kubeconfig)
    cluster_opts = pulumi.ResourceOptions(provider=k8s_provider, parent=cluster, depends_on=[kc])

    def after(*deps) -> pulumi.ResourceOptions:
        return pulumi.ResourceOptions.merge(cluster_opts, pulumi.ResourceOptions(depends_on=list(deps)))

    istio_ns = k8s.core.v1.Namespace(
        istio.namespace,
        metadata=k8s.meta.v1.ObjectMetaArgs(name=istio.namespace),
        opts=cluster_opts,
    )

    def chart(name: str, chart_name: str, values=None, opts=None) -> k8s.helm.v3.Release:
        return k8s.helm.v3.Release(
            name,
            name=name,
            chart=chart_name,
            version=istio.version,
            namespace=istio_ns.metadata.name,
            repository_opts=k8s.helm.v3.RepositoryOptsArgs(repo=istio.repo),
            values=values or {},
            opts=opts,
        )

    base = chart("istio-base", "base", opts=cluster_opts)
    istiod = chart(
        "istio-istiod", "istiod",
        values=mesh.istiod_values(mesh_id=istio.mesh_id, cluster_name=cfg.cluster.name),
        opts=after(base),
    )
    ewgw = chart(
        "istio-eastwestgateway", "gateway",
        values=mesh.eastwest_gateway_values(network=cfg.cluster.network),
        opts=after(base),
    )

    # expose istiod through the east-west gateway; the CRDs come with base
    istiod_gw = mesh.declare(
        "istiod-gateway",
        mesh.istiod_gateway(name="istiod-gateway", namespace=istio.namespace),
        after(base),
    )
    mesh.declare(
        "istiod-vs",
        mesh.istiod_virtual_service(name="istiod-vs", namespace=istio.namespace, gateway="istiod-gateway"),
        after(base, istiod_gw),
    )
    mesh.declare(
        "cross-network-gateway",
        mesh.cross_network_gateway(name="cross-network-gateway", namespace=istio.namespace),
        after(base),
    )

    firewall = gcp.compute.Firewall(
        "firewall",
        project=project,
        network=network.self_link,
        allows=[gcp.compute.FirewallAllowArgs(protocol="tcp", ports=list(g.firewall_ports))],
        direction="INGRESS",
        source_ranges=["0.0.0.0/0"],
        target_tags=[],
    )

    env = DemoEnvironment(
        cluster=cluster,
        kubeconfig=kc,
        istio_namespace=istio_ns,
        releases={"istio-base": base, "istio-istiod": istiod, "istio-eastwestgateway": ewgw},
        firewall=firewall,
    )

    for wl in cfg.workloads:
        if wl.namespace not in env.namespaces:
            env.namespaces[wl.namespace] = k8s.core.v1.Namespace(
                wl.namespace,
                metadata=k8s.meta.v1.ObjectMetaArgs(name=wl.namespace),
                opts=cluster_opts,
            )

        svc = VmService(
            wl.name,
            VmServiceArgs(
                project=project,
                network=network.id,
                subnetwork=subnet.id,
                zone=g.zone,
                namespace=env.namespaces[wl.namespace].metadata.name,
                kubeconfig_file=kubeconfig_file,
                istio_version=istio.version,
                cluster_name=cfg.cluster.name,
                cluster_network=cfg.cluster.network,
                vm_network=wl.network,
                work_root=work_dir,
                user=wl.user,
                machine_type=wl.machine_type,
                image=wl.image,
                app_image=wl.app_image,
                write_debug_snapshot=wl.write_debug_snapshot,
                remote_timeout=wl.remote_timeout,
            ),
            # the gateway must be ready before a VM can reach istiod
            opts=pulumi.ResourceOptions(depends_on=[ewgw, firewall]),
            cluster_opts=cluster_opts,
        )
        env.workloads[wl.name] = svc
        pulumi.export(f"{wl.name}-hostname", svc.hostname)

    pulumi.export("kubeconfig", kubeconfig_file)
    return env


def build_program(cfg: DemoConfig, settings: StackSettings) -> Callable[[], None]:
    """Inline program for the automation API, closed over config and stack settings."""

    def pulumi_program() -> None:
        declare_environment(cfg, settings.work_dir)

    return pulumi_program
