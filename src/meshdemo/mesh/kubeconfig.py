# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/mesh/kubeconfig.py

from __future__ import annotations

import json
from typing import Any, Dict

import pulumi

INSTALL_HINT = (
    "Install gke-gcloud-auth-plugin for use with kubectl by following "
    "https://cloud.google.com/blog/products/containers-kubernetes/kubectl-auth-changes-in-gke"
)


def render_kubeconfig(*, context: str, endpoint: str, ca_data: str) -> Dict[str, Any]:
    """kubeconfig for a GKE cluster, authenticating through gke-gcloud-auth-plugin."""
    return {
        "apiVersion": "v1",
        "clusters": [
            {
                "name": context,
                "cluster": {
                    "certificate-authority-data": ca_data,
                    "server": f"https://{endpoint}",
                },
            }
        ],
        "contexts": [
            {
                "name": context,
                "context": {"cluster": context, "user": context},
            }
        ],
        "current-context": context,
        "kind": "Config",
        "preferences": {},
        "users": [
            {
                "name": context,
                "user": {
                    "exec": {
                        "apiVersion": "client.authentication.k8s.io/v1beta1",
                        "command": "gke-gcloud-auth-plugin",
                        "installHint": INSTALL_HINT,
                        "provideClusterInfo": True,
                    }
                },
            }
        ],
    }


def gke_kubeconfig(*, project: pulumi.Input[str], cluster_name: pulumi.Input[str],
                   endpoint: pulumi.Input[str], ca_data: pulumi.Input[str]) -> pulumi.Output[str]:
    """Pending kubeconfig JSON, known once the cluster exists."""
    return pulumi.Output.all(project, cluster_name, endpoint, ca_data).apply(
        lambda v: json.dumps(
            render_kubeconfig(context=f"{v[0]}_{v[1]}", endpoint=v[2], ca_data=v[3])
        )
    )
