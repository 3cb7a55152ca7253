# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/mesh/bundle.py

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml

from ..utils.templates import TemplateRenderer
from .istio import workload_group

WORKLOAD_GROUP_FILE = "workloadgroup.yaml"

# Files `istioctl x workload entry configure` writes for a VM.
# https://istio.io/latest/docs/setup/install/virtual-machine/
BUNDLE_FILES = ("cluster.env", "istio-token", "mesh.yaml", "root-cert.pem", "hosts")


def render_workload_group_file(*, app: str, namespace: str, service_account: str, network: str) -> str:
    """The WorkloadGroup istioctl expands. Same inputs, same bytes."""
    return yaml.safe_dump(
        workload_group(name=app, namespace=namespace, service_account=service_account, network=network),
        sort_keys=False,
        default_flow_style=False,
    )


def bundle_script(
    *,
    work_dir: Path,
    app: str,
    namespace: str,
    service_account: str,
    network: str,
    cluster: str,
    istioctl: str = "istioctl",
    renderer: Optional[TemplateRenderer] = None,
) -> str:
    """
    Shell script that writes workloadgroup.yaml into `work_dir`, expands it
    with istioctl and fails unless every bundle file came out non-empty.
    KUBECONFIG must point at the cluster.
    """
    renderer = renderer or TemplateRenderer()
    return renderer.render(
        "bundle.sh.j2",
        {
            "work_dir": str(work_dir),
            "workload_group_file": WORKLOAD_GROUP_FILE,
            "workload_group": render_workload_group_file(
                app=app, namespace=namespace, service_account=service_account, network=network
            ),
            "cluster": cluster,
            "istioctl": istioctl,
            "files": BUNDLE_FILES,
        },
    )
