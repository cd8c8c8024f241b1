"""更新時に適用するグループ(Organization)のポリシー"""
from __future__ import annotations

from typing import Callable, Mapping, Sequence

SYSTEM_PRIVILEGED_GROUP = "system:masters"
CLUSTER_ADMINS_GROUP = "kubeadm:cluster-admins"

APISERVER_ETCD_CLIENT = "apiserver-etcd-client"
APISERVER_KUBELET_CLIENT = "apiserver-kubelet-client"

OrganizationTransform = Callable[[Sequence[str]], list[str]]


def keep_organizations(organizations: Sequence[str]) -> list[str]:
    return list(organizations)


def strip_privileged_group(organizations: Sequence[str]) -> list[str]:
    """特権グループを取り除き、その他のグループはそのまま残す"""

    return [org for org in organizations if org != SYSTEM_PRIVILEGED_GROUP]


def downgrade_privileged_group(organizations: Sequence[str]) -> list[str]:
    """特権グループをcluster-adminsグループに置き換える"""

    result: list[str] = []
    for org in organizations:
        if org != SYSTEM_PRIVILEGED_GROUP:
            result.append(org)
        elif CLUSTER_ADMINS_GROUP not in organizations and CLUSTER_ADMINS_GROUP not in result:
            result.append(CLUSTER_ADMINS_GROUP)
    return result


ORGANIZATION_POLICIES: Mapping[str, OrganizationTransform] = {
    APISERVER_ETCD_CLIENT: strip_privileged_group,
    APISERVER_KUBELET_CLIENT: downgrade_privileged_group,
}


def apply_organization_policy(name: str, organizations: Sequence[str]) -> list[str]:
    """証明書名に対応するポリシーを適用したグループ一覧を返す"""

    transform = ORGANIZATION_POLICIES.get(name, keep_organizations)
    return transform(organizations)


__all__ = [
    "APISERVER_ETCD_CLIENT",
    "APISERVER_KUBELET_CLIENT",
    "CLUSTER_ADMINS_GROUP",
    "ORGANIZATION_POLICIES",
    "SYSTEM_PRIVILEGED_GROUP",
    "apply_organization_policy",
    "downgrade_privileged_group",
    "keep_organizations",
    "strip_privileged_group",
]
