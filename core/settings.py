"""Settings for the certificate renewal commands.

Values come from the process environment (or any mapping provided), after
``.env`` has been loaded at import time so the CLI and tests pick it up.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from dotenv import load_dotenv

from features.certs.domain.exceptions import CertificateConfigurationError
from features.certs.domain.topology import (
    DEFAULT_CERTIFICATE_VALIDITY_DAYS,
    DEFAULT_CERTIFICATES_DIR,
    ClusterTopology,
)
from features.certs.domain.usage import EncryptionAlgorithm

load_dotenv()

DEFAULT_KUBECONFIG_DIR = "/etc/kubernetes"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _read_bool(env: Mapping[str, str], key: str, default: bool = False) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _read_int(
    env: Mapping[str, str], key: str, default: int, min_v: int, max_v: int
) -> Tuple[int, List[str]]:
    msgs: List[str] = []
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default, msgs
    try:
        v = int(raw)
        if v < min_v or v > max_v:
            msgs.append(
                f"{key}: out of range ({v}), allowed {min_v}..{max_v} -> using default {default}"
            )
            return default, msgs
        return v, msgs
    except ValueError:
        msgs.append(f"{key}: could not parse as integer -> using default {default}")
        return default, msgs


def _is_abs(p: str) -> bool:
    try:
        return Path(p).is_absolute()
    except Exception:
        return False


@dataclass(frozen=True)
class RenewalSettings:
    certificates_dir: str
    kubeconfig_dir: str
    external_etcd: bool
    encryption_algorithm: str
    certificate_validity_days: int
    cluster_config: Optional[str]
    log_level: str
    parse_warnings: Tuple[str, ...] = ()

    # ------------------------------------------------------------------
    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> "RenewalSettings":
        env = os.environ if env is None else env

        certificates_dir = (env.get("PKI_CERTIFICATES_DIR") or DEFAULT_CERTIFICATES_DIR).strip()
        kubeconfig_dir = (env.get("PKI_KUBECONFIG_DIR") or DEFAULT_KUBECONFIG_DIR).strip()
        algorithm = (env.get("PKI_ENCRYPTION_ALGORITHM") or EncryptionAlgorithm.RSA_2048.value).strip()
        validity, msgs = _read_int(
            env, "PKI_CERTIFICATE_VALIDITY_DAYS", DEFAULT_CERTIFICATE_VALIDITY_DAYS, 1, 3650
        )
        cluster_config = (env.get("PKI_CLUSTER_CONFIG") or "").strip() or None
        log_level = (env.get("PKI_LOG_LEVEL") or "INFO").strip().upper()

        return RenewalSettings(
            certificates_dir=certificates_dir,
            kubeconfig_dir=kubeconfig_dir,
            external_etcd=_read_bool(env, "PKI_EXTERNAL_ETCD", False),
            encryption_algorithm=algorithm,
            certificate_validity_days=validity,
            cluster_config=cluster_config,
            log_level=log_level,
            parse_warnings=tuple(msgs),
        )

    # ------------------------------------------------------------------
    def validate(self) -> Tuple[List[str], List[str]]:
        """Returns ``(warnings, errors)``"""
        warns: List[str] = list(self.parse_warnings)
        errs: List[str] = []

        for key, path in [
            ("PKI_CERTIFICATES_DIR", self.certificates_dir),
            ("PKI_KUBECONFIG_DIR", self.kubeconfig_dir),
        ]:
            if not path:
                errs.append(f"{key}: not set")
            elif not _is_abs(path):
                errs.append(f"{key}: specify an absolute path (current: {path})")
            elif not Path(path).is_dir():
                warns.append(f"{key}: directory does not exist: {path}")

        try:
            EncryptionAlgorithm.from_str(self.encryption_algorithm)
        except ValueError:
            allowed = ", ".join(item.value for item in EncryptionAlgorithm)
            errs.append(
                f"PKI_ENCRYPTION_ALGORITHM: unsupported ({self.encryption_algorithm}), allowed {allowed}"
            )

        if self.cluster_config and not Path(self.cluster_config).is_file():
            errs.append(f"PKI_CLUSTER_CONFIG: file not found: {self.cluster_config}")

        if self.log_level not in _LOG_LEVELS:
            warns.append(f"PKI_LOG_LEVEL: unknown level {self.log_level} -> using INFO")

        return warns, errs

    # ------------------------------------------------------------------
    def topology(self) -> ClusterTopology:
        """Resolve the cluster topology, letting the YAML cluster config win."""

        try:
            algorithm = EncryptionAlgorithm.from_str(self.encryption_algorithm)
        except ValueError as exc:
            raise CertificateConfigurationError(
                str(exc), operation="load cluster configuration"
            ) from exc

        base = ClusterTopology(
            certificates_dir=self.certificates_dir,
            external_etcd=self.external_etcd,
            encryption_algorithm=algorithm,
            certificate_validity_days=self.certificate_validity_days,
        )
        if not self.cluster_config:
            base.validate()
            return base
        return ClusterTopology.from_mapping(load_cluster_config(self.cluster_config), defaults=base)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "certificates_dir": self.certificates_dir,
            "kubeconfig_dir": self.kubeconfig_dir,
            "external_etcd": self.external_etcd,
            "encryption_algorithm": self.encryption_algorithm,
            "certificate_validity_days": self.certificate_validity_days,
            "cluster_config": self.cluster_config or "",
            "log_level": self.log_level,
        }


def load_cluster_config(path: str) -> Any:
    """Read a ClusterConfiguration YAML document."""

    try:
        with open(path, "r", encoding="utf-8") as handle:
            return yaml.safe_load(handle)
    except OSError as exc:
        raise CertificateConfigurationError(
            f"cannot read cluster configuration {path}: {exc.strerror or exc}",
            operation="load cluster configuration",
        ) from exc
    except yaml.YAMLError as exc:
        raise CertificateConfigurationError(
            f"invalid cluster configuration {path}: {exc}",
            operation="load cluster configuration",
        ) from exc


__all__ = ["DEFAULT_KUBECONFIG_DIR", "RenewalSettings", "load_cluster_config"]
