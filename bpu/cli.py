"""Command-line interface for projecting transactions into tapes.

``bpu parse`` prints the BPU JSON of a raw transaction (given as hex, read
from stdin, or fetched from a node by txid); ``bpu ord`` prints the
inscription envelopes found in its outputs.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Sequence

from .config import ConfigurationError, load_split_config, set_default_config_path
from .errors import BPUError
from .model import ParseConfig
from .ordinals import InscriptionCollection, find_inscriptions, handler
from .projector import collect
from .protocols import PRESETS
from .rpc_client import NodeRPCClient, RPCError, RPCTransportError, format_rpc_hint
from .transaction import decode_raw_transaction

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

COMPACT_JSON_SEPARATORS = (",", ":")


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "raw_tx",
        nargs="?",
        help="Raw transaction hex ('-' or omitted reads stdin unless --txid is given)",
    )
    parser.add_argument("--txid", help="Fetch the raw transaction from the configured node")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Project transaction scripts into tapes and cells")
    parser.add_argument("--config", help="YAML config file (default: ~/.bpu.yaml)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_parser = subparsers.add_parser("parse", help="print the BPU JSON of a transaction")
    _add_source_arguments(parse_parser)
    parse_parser.add_argument(
        "--preset",
        choices=sorted(PRESETS) + ["none"],
        default="bob",
        help="Split rule preset (default: bob)",
    )
    parse_parser.add_argument(
        "--split-config",
        help="YAML file with a 'split' rule list; overrides --preset",
    )
    parse_parser.add_argument("--indent", type=int, default=None, help="Pretty-print with this indent")

    ord_parser = subparsers.add_parser("ord", help="extract ord inscription envelopes")
    _add_source_arguments(ord_parser)
    ord_parser.add_argument(
        "--all",
        action="store_true",
        help="Report every qualifying output instead of the first one",
    )

    return parser


def _read_raw_tx(args: argparse.Namespace) -> str:
    if args.txid:
        if args.raw_tx:
            raise CLIError("pass either a raw transaction or --txid, not both")
        client = NodeRPCClient.from_env()
        try:
            return client.get_raw_transaction(args.txid)
        except RPCError as exc:
            hint = format_rpc_hint(exc)
            if hint:
                raise CLIError(f"{exc}\nHint: {hint}") from exc
            raise

    raw = args.raw_tx
    if raw is None or raw == "-":
        raw = sys.stdin.read()
    raw = raw.strip()
    if not raw:
        raise CLIError("no raw transaction provided")
    return raw


def _parse_config_from_args(args: argparse.Namespace) -> ParseConfig:
    if args.split_config:
        return ParseConfig(split=load_split_config(args.split_config))
    if args.preset == "none":
        return ParseConfig()
    return PRESETS[args.preset].parse_config()


def cmd_parse(args: argparse.Namespace) -> None:
    parse_config = _parse_config_from_args(args)
    tx = decode_raw_transaction(_read_raw_tx(args))
    print(collect(tx, parse_config).to_json(indent=args.indent))


def cmd_ord(args: argparse.Namespace) -> None:
    tx = decode_raw_transaction(_read_raw_tx(args))
    collection = InscriptionCollection()
    if args.all:
        collection.ord.extend(find_inscriptions(tx))
    else:
        handler(tx, collection)
    print(json.dumps(collection.to_dict(), separators=COMPACT_JSON_SEPARATORS))


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    if args.config:
        set_default_config_path(args.config)
    try:
        if args.command == "parse":
            cmd_parse(args)
        elif args.command == "ord":
            cmd_ord(args)
        else:  # pragma: no cover - argparse enforces choices
            raise CLIError(f"Unknown command: {args.command}")
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
    except (
        CLIError,
        BPUError,
        ConfigurationError,
        RPCError,
        RPCTransportError,
    ) as exc:
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
