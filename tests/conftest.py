import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

_PKI_ENV_KEYS = (
    "PKI_CERTIFICATES_DIR",
    "PKI_KUBECONFIG_DIR",
    "PKI_EXTERNAL_ETCD",
    "PKI_ENCRYPTION_ALGORITHM",
    "PKI_CERTIFICATE_VALIDITY_DAYS",
    "PKI_CLUSTER_CONFIG",
    "PKI_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_pki_env(monkeypatch):
    """開発者の.envや環境変数がテストに影響しないようにする"""

    for key in _PKI_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture(scope="session")
def test_ca():
    from tests.helpers.pki import make_ca

    return make_ca()


@pytest.fixture
def pki_dir(tmp_path, test_ca):
    """ca と etcd/ca を配置した証明書ディレクトリ"""

    from tests.helpers.pki import write_ca

    write_ca(tmp_path, "ca", test_ca)
    write_ca(tmp_path, os.path.join("etcd", "ca"), test_ca)
    return tmp_path
