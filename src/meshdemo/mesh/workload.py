# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/mesh/workload.py

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

import pulumi
import pulumi_gcp as gcp
import pulumi_kubernetes as k8s
import pulumi_tls as tls
from pulumi_command import local, remote

from ..utils.templates import TemplateRenderer
from . import istio
from .bundle import BUNDLE_FILES, bundle_script

TYPE = "meshdemo:istio:VmService"

DEFAULT_APP_IMAGE = "ghcr.io/chinaran/go-httpbin:1.4-alpine3.17"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

# Written to stderr by the debug snapshot script when it gives up.
SNAPSHOT_FAILED = "debug snapshot skipped"


@dataclass
class VmServiceArgs:
    project: pulumi.Input[str]
    network: pulumi.Input[str]          # id of the VPC
    subnetwork: pulumi.Input[str]       # id of the subnet
    zone: str
    namespace: pulumi.Input[str]
    kubeconfig_file: str
    istio_version: str
    cluster_name: str
    cluster_network: str
    vm_network: str
    work_root: Path
    user: str = "istio"
    machine_type: str = "f1-micro"
    image: str = "ubuntu-2204-jammy-v20230302"
    app_image: str = DEFAULT_APP_IMAGE
    write_debug_snapshot: bool = True
    # Upper bound for each remote step; expiry fails the step.
    remote_timeout: str = "30m"
    dial_error_limit: int = 20
    per_dial_timeout: int = 15


def remote_step_options(timeout: str, *, parent: pulumi.Resource, depends_on: List[Any],
                        delete_before_replace: bool = False) -> pulumi.ResourceOptions:
    """Options shared by every step that runs over SSH."""
    return pulumi.ResourceOptions(
        parent=parent,
        depends_on=depends_on,
        delete_before_replace=delete_before_replace,
        custom_timeouts=pulumi.CustomTimeouts(create=timeout, update=timeout, delete=timeout),
    )


def _nat_ip(interfaces) -> str:
    configs = interfaces[0].access_configs if interfaces else None
    return configs[0].nat_ip if configs else ""


class VmService(pulumi.ComponentResource):
    """
    A virtual machine joined to the mesh as a workload.

    Declares, in order: the workload identity (ServiceAccount and
    WorkloadGroup), the bootstrap bundle generated by istioctl, an SSH key
    pair, the instance, the bundle copied onto the instance, Docker, the
    demo application container, and finally the Istio sidecar.

    `cluster_opts` is applied to steps that talk to the cluster (provider
    and a dependency on the kubeconfig being written). `opts.depends_on`
    also gates the instance itself.
    """

    def __init__(
        self,
        name: str,
        args: VmServiceArgs,
        opts: Optional[pulumi.ResourceOptions] = None,
        cluster_opts: Optional[pulumi.ResourceOptions] = None,
        renderer: Optional[TemplateRenderer] = None,
    ):
        super().__init__(TYPE, name, None, opts)
        renderer = renderer or TemplateRenderer()
        self.work_dir = Path(args.work_root) / "workloads" / name
        home = f"/home/{args.user}"

        child = pulumi.ResourceOptions(parent=self)
        on_cluster = pulumi.ResourceOptions.merge(cluster_opts, child)

        # 1. identity
        self.service_account = k8s.core.v1.ServiceAccount(
            name,
            metadata=k8s.meta.v1.ObjectMetaArgs(name=name, namespace=args.namespace),
            opts=pulumi.ResourceOptions.merge(on_cluster, pulumi.ResourceOptions(delete_before_replace=True)),
        )
        self.workload_group = istio.declare(
            name,
            istio.workload_group(
                name=name, namespace=args.namespace, service_account=name, network=args.vm_network
            ),
            on_cluster,
        )

        # 2. bootstrap bundle
        script = pulumi.Output.from_input(args.namespace).apply(
            lambda ns: bundle_script(
                work_dir=self.work_dir,
                app=name,
                namespace=ns,
                service_account=name,
                network=args.vm_network,
                cluster=args.cluster_name,
                renderer=renderer,
            )
        )
        self.bundle = local.Command(
            name,
            create=script,
            delete=f'rm -rf "{self.work_dir}"',
            environment={"KUBECONFIG": args.kubeconfig_file},
            opts=pulumi.ResourceOptions(
                parent=self,
                depends_on=[self.service_account, self.workload_group],
                delete_before_replace=True,
            ),
        )

        # 3. key pair
        self.key = tls.PrivateKey(name, algorithm="ED25519", opts=child)
        self.private_key = self.key.private_key_openssh

        # 4. instance
        ssh_keys = pulumi.Output.concat(
            args.user, ":", self.key.public_key_openssh.apply(str.strip), " ", args.user
        )
        self.vm = gcp.compute.Instance(
            name,
            project=args.project,
            zone=args.zone,
            machine_type=args.machine_type,
            boot_disk=gcp.compute.InstanceBootDiskArgs(
                initialize_params=gcp.compute.InstanceBootDiskInitializeParamsArgs(image=args.image),
            ),
            network_interfaces=[
                gcp.compute.InstanceNetworkInterfaceArgs(
                    network=args.network,
                    subnetwork=args.subnetwork,
                    access_configs=[gcp.compute.InstanceNetworkInterfaceAccessConfigArgs()],
                )
            ],
            service_account=gcp.compute.InstanceServiceAccountArgs(scopes=[CLOUD_PLATFORM_SCOPE]),
            allow_stopping_for_update=True,
            metadata={"ssh-keys": ssh_keys},
            # key and bundle are both in place before the instance exists
            opts=pulumi.ResourceOptions(
                parent=self, depends_on=[self.bundle, *((opts.depends_on or []) if opts else [])],
            ),
        )
        self.hostname = self.vm.network_interfaces.apply(_nat_ip)

        # 5. debug snapshot, best effort
        self.snapshot = None
        if args.write_debug_snapshot:
            pulumi.log.warn(
                f"{name}: the VM private key is written in plain text to {self.work_dir}/key "
                "(set write_debug_snapshot: false to disable)",
                resource=self,
            )
            self.snapshot = local.Command(
                f"{name}-key",
                create=renderer.render(
                    "debug_snapshot.sh.j2",
                    {"work_dir": str(self.work_dir), "failure_marker": SNAPSHOT_FAILED},
                ),
                delete=f'rm -f "{self.work_dir}/key" "{self.work_dir}/hostname"',
                environment={"SSHKEY": self.private_key, "HOSTNAME": self.hostname},
                opts=pulumi.ResourceOptions(parent=self, depends_on=[self.bundle], delete_before_replace=True),
            )
            self.snapshot.stderr.apply(lambda err: _warn_snapshot(self, err))

        connection = remote.ConnectionArgs(
            host=self.hostname,
            user=args.user,
            private_key=self.private_key,
            dial_error_limit=args.dial_error_limit,
            per_dial_timeout=args.per_dial_timeout,
        )

        # 6. bundle onto the instance; a regenerated bundle is copied again
        self.copies = [
            remote.CopyFile(
                f"{name}-{f}",
                connection=connection,
                local_path=str(self.work_dir / f),
                remote_path=f"{home}/{f}",
                triggers=[self.bundle.id],
                opts=remote_step_options(
                    args.remote_timeout, parent=self, depends_on=[self.vm, self.bundle],
                    delete_before_replace=True,
                ),
            )
            for f in BUNDLE_FILES
        ]

        # 7. container runtime
        self.docker_setup = remote.Command(
            f"{name}-docker-setup",
            connection=connection,
            create=renderer.render("docker_setup.sh.j2", {"user": args.user}),
            opts=remote_step_options(args.remote_timeout, parent=self, depends_on=[self.vm]),
        )

        # 8. demo application
        self.docker_run = remote.Command(
            f"{name}-docker-run",
            connection=connection,
            create=renderer.render("docker_run.sh.j2", {"name": name, "image": args.app_image}),
            delete=f"docker rm -f {name}",
            opts=remote_step_options(
                args.remote_timeout, parent=self, depends_on=[self.docker_setup],
                delete_before_replace=True,
            ),
        )

        # 9. sidecar
        self.sidecar = remote.Command(
            f"{name}-configure",
            connection=connection,
            create=renderer.render("sidecar.sh.j2", {"home": home, "istio_version": args.istio_version}),
            opts=remote_step_options(
                args.remote_timeout, parent=self, depends_on=[*self.copies, self.docker_run],
            ),
        )

        self.register_outputs({"hostname": self.hostname, "private_key": self.private_key})


def _warn_snapshot(svc: VmService, stderr: Optional[str]) -> None:
    if stderr and SNAPSHOT_FAILED in stderr:
        pulumi.log.warn(stderr.strip(), resource=svc)
