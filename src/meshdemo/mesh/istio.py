# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/meshdemo/mesh/istio.py

from __future__ import annotations

from typing import Any, Dict, Optional

import pulumi
import pulumi_kubernetes as k8s

NETWORKING_API = "networking.istio.io/v1alpha3"

ISTIOD_HOST = "istiod.istio-system.svc.cluster.local"
EASTWEST_SELECTOR = {"istio": "eastwestgateway"}


# --------------------------------------------------
# Workload group
# --------------------------------------------------

def workload_group(*, name: Any, namespace: Any, service_account: Any, network: Any) -> Dict[str, Any]:
    return {
        "apiVersion": NETWORKING_API,
        "kind": "WorkloadGroup",
        "metadata": {
            "name": name,
            "namespace": namespace,
        },
        "spec": {
            "metadata": {"labels": {"app": name}},
            "template": {
                "serviceAccount": service_account,
                "network": network,
            },
        },
    }


# --------------------------------------------------
# Helm values
# --------------------------------------------------

def istiod_values(*, mesh_id: str, cluster_name: str) -> Dict[str, Any]:
    return {
        "global": {
            "meshID": mesh_id,
            "multiCluster": {"clusterName": cluster_name},
        },
    }


def eastwest_gateway_values(*, network: str) -> Dict[str, Any]:
    return {
        "labels": {
            "istio": "eastwestgateway",
            "app": "istio-eastwestgateway",
            "topology.istio.io/network": network,
        },
        "service": {
            "ports": [
                {"name": "status-port", "port": 15021, "targetPort": 15021},
                {"name": "tls", "port": 15443, "targetPort": 15443},
                {"name": "tls-istiod", "port": 15012, "targetPort": 15012},
                {"name": "tls-webhook", "port": 15017, "targetPort": 15017},
            ],
        },
    }


# --------------------------------------------------
# Exposing istiod through the east-west gateway
# (samples/multicluster/expose-istiod.yaml)
# --------------------------------------------------

def istiod_gateway(*, name: str, namespace: str) -> Dict[str, Any]:
    return {
        "apiVersion": NETWORKING_API,
        "kind": "Gateway",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "selector": dict(EASTWEST_SELECTOR),
            "servers": [
                {
                    "port": {"name": "tls-istiod", "number": 15012, "protocol": "tls"},
                    "tls": {"mode": "PASSTHROUGH"},
                    "hosts": ["*"],
                },
                {
                    "port": {"name": "tls-istiodwebhook", "number": 15017, "protocol": "tls"},
                    "tls": {"mode": "PASSTHROUGH"},
                    "hosts": ["*"],
                },
            ],
        },
    }


def _tls_route(port: int, target_port: int) -> Dict[str, Any]:
    return {
        "match": [{"port": port, "sniHosts": ["*"]}],
        "route": [{"destination": {"host": ISTIOD_HOST, "port": {"number": target_port}}}],
    }


def istiod_virtual_service(*, name: str, namespace: str, gateway: Any) -> Dict[str, Any]:
    return {
        "apiVersion": NETWORKING_API,
        "kind": "VirtualService",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "hosts": ["*"],
            "gateways": [gateway],
            "tls": [
                _tls_route(15012, 15012),
                _tls_route(15017, 443),
            ],
        },
    }


def cross_network_gateway(*, name: str, namespace: str) -> Dict[str, Any]:
    return {
        "apiVersion": NETWORKING_API,
        "kind": "Gateway",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "selector": dict(EASTWEST_SELECTOR),
            "servers": [
                {
                    "port": {"number": 15443, "name": "tls", "protocol": "TLS"},
                    "tls": {"mode": "AUTO_PASSTHROUGH"},
                    "hosts": ["*.local"],
                },
            ],
        },
    }


def declare(resource_name: str, manifest: Dict[str, Any],
            opts: Optional[pulumi.ResourceOptions] = None) -> k8s.apiextensions.CustomResource:
    """Istio custom resource from one of the manifests above."""
    return k8s.apiextensions.CustomResource(
        resource_name,
        api_version=manifest["apiVersion"],
        kind=manifest["kind"],
        metadata=manifest["metadata"],
        spec=manifest["spec"],
        opts=opts,
    )
