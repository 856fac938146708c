from __future__ import annotations

from pathlib import Path

import pytest

from vcpbridge._crypto.signing import Signer
from vcpbridge.cli import main
from vcpbridge.config import BridgeConfig


def test_keygen_writes_matching_pair(tmp_path: Path) -> None:
    assert main(["keygen", "--out-dir", str(tmp_path)]) == 0

    private_pem = (tmp_path / "private-key.pem").read_text()
    public_pem = (tmp_path / "public-key.pem").read_text()
    assert Signer.from_pem(private_pem).public_key_pem() == public_pem
    assert (tmp_path / "private-key.pem").stat().st_mode & 0o777 == 0o600


def test_keygen_refuses_to_overwrite(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "private-key.pem").write_text("existing")

    assert main(["keygen", "-o", str(tmp_path)]) == 1
    assert (tmp_path / "private-key.pem").read_text() == "existing"
    assert "--force" in capsys.readouterr().err


def test_keygen_force_overwrites(tmp_path: Path) -> None:
    (tmp_path / "private-key.pem").write_text("existing")

    assert main(["keygen", "-o", str(tmp_path), "--force"]) == 0
    assert "PRIVATE KEY" in (tmp_path / "private-key.pem").read_text()


def test_serve_rejects_unknown_region(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.delenv("VCP_GATEWAY_URL", raising=False)
    monkeypatch.setenv("TESLA_REGION", "mars")

    assert main(["serve"]) == 2
    assert "mars" in capsys.readouterr().err


def test_serve_runs_with_cli_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, BridgeConfig] = {}

    def fake_run(config: BridgeConfig) -> None:
        seen["config"] = config

    monkeypatch.setattr("vcpbridge.server.run", fake_run)
    monkeypatch.delenv("VCP_GATEWAY_URL", raising=False)

    assert main(["serve", "--port", "9000", "--region", "na", "--domain", "fleet.example.com"]) == 0
    config = seen["config"]
    assert config.port == 9000
    assert config.region == "na"
    assert config.domain == "fleet.example.com"
