# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

import json

from meshdemo.config.models import DemoConfig, WorkloadConfig
from meshdemo.mesh.kubeconfig import render_kubeconfig
from meshdemo.mesh.program import declare_environment

from fakes import CLUSTER_CA, CLUSTER_ENDPOINT, deploy

RELEASE = "kubernetes:helm.sh/v3:Release"
NAMESPACE = "kubernetes:core/v1:Namespace"
ISTIO = "kubernetes:networking.istio.io/v1alpha3"


def _declare(work_dir, cfg=None):
    return deploy(lambda: declare_environment(cfg or DemoConfig(), work_dir))


def test_program_declares_the_whole_environment(mocks, tmp_path):
    _declare(tmp_path)

    declared = {(a.typ, a.name) for a in mocks.created}
    for key in [
        ("gcp:organizations/project:Project", "project"),
        ("gcp:projects/service:Service", "gke"),
        ("gcp:compute/network:Network", "network"),
        ("gcp:compute/subnetwork:Subnetwork", "subnet"),
        ("gcp:container/cluster:Cluster", "cluster"),
        ("command:local:Command", "kc"),
        ("pulumi:providers:kubernetes", "k8s"),
        (NAMESPACE, "istio-system"),
        (RELEASE, "istio-base"),
        (RELEASE, "istio-istiod"),
        (RELEASE, "istio-eastwestgateway"),
        (f"{ISTIO}:Gateway", "istiod-gateway"),
        (f"{ISTIO}:VirtualService", "istiod-vs"),
        (f"{ISTIO}:Gateway", "cross-network-gateway"),
        ("gcp:compute/firewall:Firewall", "firewall"),
        (NAMESPACE, "onprem"),
        ("gcp:compute/instance:Instance", "test"),
        ("command:remote:Command", "test-configure"),
    ]:
        assert key in declared, key


def test_cluster_is_autopilot_and_deletable(mocks, tmp_path):
    _declare(tmp_path)

    cluster = mocks.inputs("gcp:container/cluster:Cluster", "cluster")
    assert cluster["name"] == "controlplane"
    assert cluster["location"] == "us-central1"
    assert cluster["enableAutopilot"] is True
    assert cluster["deletionProtection"] is False

    subnet = mocks.inputs("gcp:compute/subnetwork:Subnetwork", "subnet")
    assert subnet["ipCidrRange"] == "10.0.1.0/24"
    assert mocks.inputs("gcp:compute/network:Network", "network")["autoCreateSubnetworks"] is False


def test_resources_are_created_in_dependency_order(mocks, tmp_path):
    _declare(tmp_path)
    at = mocks.index

    assert at("gcp:projects/service:Service", "gke") < at("gcp:container/cluster:Cluster", "cluster")
    assert at("gcp:container/cluster:Cluster", "cluster") < at("command:local:Command", "kc")
    assert at("command:local:Command", "kc") < at(NAMESPACE, "istio-system")
    assert at(RELEASE, "istio-base") < at(RELEASE, "istio-istiod")
    assert at(RELEASE, "istio-base") < at(RELEASE, "istio-eastwestgateway")
    assert at(f"{ISTIO}:Gateway", "istiod-gateway") < at(f"{ISTIO}:VirtualService", "istiod-vs")
    # the VM waits for the east-west gateway and the firewall
    assert at(RELEASE, "istio-eastwestgateway") < at("gcp:compute/instance:Instance", "test")
    assert at("gcp:compute/firewall:Firewall", "firewall") < at("gcp:compute/instance:Instance", "test")
    assert at(NAMESPACE, "onprem") < at("kubernetes:core/v1:ServiceAccount", "test")


def test_chart_releases_are_pinned(mocks, tmp_path):
    _declare(tmp_path)

    for name, chart in [("istio-base", "base"), ("istio-istiod", "istiod"), ("istio-eastwestgateway", "gateway")]:
        release = mocks.inputs(RELEASE, name)
        assert release["chart"] == chart
        assert release["name"] == name
        assert release["version"] == "1.17.2"
        assert release["namespace"] == "istio-system"
        assert release["repositoryOpts"]["repo"] == "https://istio-release.storage.googleapis.com/charts"

    istiod = mocks.inputs(RELEASE, "istio-istiod")
    assert istiod["values"]["global"] == {"meshID": "mesh", "multiCluster": {"clusterName": "controlplane"}}
    ewgw = mocks.inputs(RELEASE, "istio-eastwestgateway")
    assert ewgw["values"]["labels"]["topology.istio.io/network"] == "kube-network"
    assert [p["port"] for p in ewgw["values"]["service"]["ports"]] == [15021, 15443, 15012, 15017]


def test_kubeconfig_is_written_under_work_dir(mocks, tmp_path):
    _declare(tmp_path)

    kc = mocks.inputs("command:local:Command", "kc")
    assert f'"{tmp_path}/kubeconfig"' in kc["create"]
    assert kc["delete"] == f'rm -f "{tmp_path}/kubeconfig"'

    doc = json.loads(kc["environment"]["KUBECONFIG"])
    assert doc["current-context"] == "kubecon-eu-2023-apiserver_controlplane"
    assert doc["clusters"][0]["cluster"] == {
        "certificate-authority-data": CLUSTER_CA,
        "server": f"https://{CLUSTER_ENDPOINT}",
    }

    bundle = mocks.inputs("command:local:Command", "test")
    assert bundle["environment"]["KUBECONFIG"] == str(tmp_path / "kubeconfig")


def test_each_configured_workload_gets_its_own_vm(mocks, tmp_path):
    cfg = DemoConfig(workloads=[WorkloadConfig(name="a"), WorkloadConfig(name="b", write_debug_snapshot=False)])
    env = _declare(tmp_path, cfg)

    assert sorted(env.workloads) == ["a", "b"]
    assert sorted(mocks.names("gcp:compute/instance:Instance")) == ["a", "b"]
    # both share the onprem namespace, declared once
    assert sorted(mocks.names(NAMESPACE)) == ["istio-system", "onprem"]
    assert "a-key" in mocks.names("command:local:Command")
    assert "b-key" not in mocks.names("command:local:Command")


def test_render_kubeconfig_uses_the_gke_auth_plugin():
    doc = render_kubeconfig(context="p_c", endpoint="1.2.3.4", ca_data="Q0E=")

    assert doc["current-context"] == "p_c"
    assert doc["clusters"][0]["cluster"]["server"] == "https://1.2.3.4"
    assert doc["users"][0]["user"]["exec"]["command"] == "gke-gcloud-auth-plugin"
