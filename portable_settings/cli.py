from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .config import EngineSettings
from .errors import InvalidEnvelopeError, SettingsExchangeError
from .exchange import ExportEnvelope
from .serialization import deserialize, serialize
from .transport import decode, encode


# ---------- file I/O -------------------------------------------------------- #


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    return {"yml": "yaml", "yaml": "yaml", "toml": "toml"}.get(ext, "json")


def _stringify_keys(data: Any) -> Any:
    if isinstance(data, dict):
        return {str(k): _stringify_keys(v) for k, v in data.items()}
    return data


def _load_file(path: Path, *, file_format: Optional[str] = None) -> Dict[str, Any]:
    fmt = (file_format or _detect_format(path)).lower()
    text = path.read_text(encoding="utf-8")
    if fmt == "yaml":
        import yaml

        return yaml.safe_load(text) or {}
    if fmt == "toml":
        try:
            import tomli
        except ImportError:
            import tomllib as tomli
        return tomli.loads(text)
    return json.loads(text)


def _dump_file(path: Path, data: Dict[str, Any], *, file_format: Optional[str] = None):
    fmt = (file_format or _detect_format(path)).lower()
    if fmt == "yaml":
        import yaml

        path.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8")
    elif fmt == "toml":
        import tomli_w

        path.write_text(tomli_w.dumps(_stringify_keys(data)), encoding="utf-8")
    else:  # json
        path.write_text(json.dumps(data, indent=4, ensure_ascii=False), encoding="utf-8")


# ---------- commands -------------------------------------------------------- #


def _read_blob(arg: str) -> str:
    return sys.stdin.read() if arg == "-" else arg


def _open_envelope(blob: str, settings: EngineSettings) -> Dict[str, Any]:
    data = deserialize(decode(blob).decode("utf-8"), max_depth=settings.max_depth)
    if not isinstance(data, dict):
        raise InvalidEnvelopeError(f"expected a table, got {type(data).__name__}")
    return data


def _cmd_pack(args: argparse.Namespace, settings: EngineSettings) -> None:
    snapshot = _load_file(Path(args.file), file_format=args.format)
    if not isinstance(snapshot, dict):
        raise InvalidEnvelopeError("snapshot file must contain a table at the top level")
    envelope = ExportEnvelope(
        owner_identity=args.addon,
        owner_version=args.version,
        engine_version=args.engine_version or settings.engine_version,
        snapshot=snapshot,
    )
    print(encode(serialize(envelope.to_wire(), max_depth=settings.max_depth)))


def _cmd_unpack(args: argparse.Namespace, settings: EngineSettings) -> None:
    data = _open_envelope(_read_blob(args.blob), settings)
    snapshot = data.get("settings")
    if not isinstance(snapshot, dict):
        raise InvalidEnvelopeError("envelope carries no settings table")
    _dump_file(Path(args.out), snapshot, file_format=args.format)


def _cmd_inspect(args: argparse.Namespace, settings: EngineSettings) -> None:
    data = _open_envelope(_read_blob(args.blob), settings)
    print(json.dumps(_stringify_keys(data), indent=4, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Portable settings export tool")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_pack = sub.add_parser("pack", help="Turn a JSON/YAML/TOML snapshot into an export string")
    p_pack.add_argument("file")
    p_pack.add_argument("--addon", required=True, help="Owner identity")
    p_pack.add_argument("--version", required=True, help="Owner version")
    p_pack.add_argument("--engine-version", default=None)
    p_pack.add_argument("--format", choices=["json", "yaml", "toml"], default=None)
    p_pack.set_defaults(func=_cmd_pack)

    p_unpack = sub.add_parser("unpack", help="Write the snapshot of an export string to a file")
    p_unpack.add_argument("blob", help="Export string, or '-' for stdin")
    p_unpack.add_argument("out")
    p_unpack.add_argument("--format", choices=["json", "yaml", "toml"], default=None)
    p_unpack.set_defaults(func=_cmd_unpack)

    p_inspect = sub.add_parser("inspect", help="Print the envelope of an export string")
    p_inspect.add_argument("blob", help="Export string, or '-' for stdin")
    p_inspect.set_defaults(func=_cmd_inspect)

    args = parser.parse_args(argv)
    try:
        args.func(args, EngineSettings())
    except (SettingsExchangeError, UnicodeDecodeError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - manual use
    sys.exit(main())
