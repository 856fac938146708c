"""Command line entry point.

``vcpbridge serve`` runs the HTTP bridge from environment configuration;
``vcpbridge keygen`` writes a fresh P-256 key pair for a new deployment.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from vcpbridge._crypto.signing import generate_key_pair
from vcpbridge.config import BridgeConfig
from vcpbridge.exceptions import VcpConfigError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vcpbridge", description="Signed Vehicle Command Protocol bridge.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP bridge")
    serve.add_argument("--host", help="Listen address (env: HOST)")
    serve.add_argument("--port", type=int, help="Listen port (env: PORT, default 8080)")
    serve.add_argument("--region", choices=("na", "eu", "cn"), help="Gateway region (env: TESLA_REGION)")
    serve.add_argument("--domain", help="Signing domain sent in the handshake (env: TESLA_DOMAIN)")
    serve.add_argument("--log-level", help="Log level (env: VCP_LOG_LEVEL, default INFO)")
    serve.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    keygen = sub.add_parser("keygen", help="Generate a P-256 key pair")
    keygen.add_argument("--out-dir", "-o", type=Path, default=Path("."), help="Directory for the PEM files")
    keygen.add_argument("--force", action="store_true", help="Overwrite existing key files")
    return parser


def _serve(args: argparse.Namespace) -> int:
    overrides = {
        name: value
        for name, value in (
            ("host", args.host),
            ("port", args.port),
            ("region", args.region),
            ("domain", args.domain),
            ("log_level", args.log_level),
        )
        if value is not None
    }
    try:
        config = BridgeConfig.from_env(**overrides)
        config.resolved_gateway_url()
    except VcpConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    level = logging.DEBUG if args.verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Imported late so `keygen` works without the server stack loaded.
    from vcpbridge.server import run

    run(config)
    return 0


def _keygen(args: argparse.Namespace) -> int:
    out_dir: Path = args.out_dir
    private_path = out_dir / "private-key.pem"
    public_path = out_dir / "public-key.pem"
    if not args.force:
        existing = [p for p in (private_path, public_path) if p.exists()]
        if existing:
            print(f"error: refusing to overwrite {', '.join(map(str, existing))} (use --force)", file=sys.stderr)
            return 1

    private_pem, public_pem = generate_key_pair()
    out_dir.mkdir(parents=True, exist_ok=True)
    private_path.write_text(private_pem, encoding="ascii")
    private_path.chmod(0o600)
    public_path.write_text(public_pem, encoding="ascii")
    print(f"wrote {private_path} and {public_path}")
    print("Serve the public key at /.well-known/appspecific/com.tesla.3p.public-key.pem on your domain.")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.command == "serve":
        return _serve(args)
    return _keygen(args)


if __name__ == "__main__":
    raise SystemExit(main())
