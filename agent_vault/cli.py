#!/usr/bin/env python3
"""
Secure block command line utility

Encrypts an agent configuration for a set of Solana wallets, decrypts it
with a wallet key file, and checks which wallets can open a block.

Usage:
    Encryption:
        agent-vault encrypt --input config.json --asset <MINT> \\
            --recipient <OWNER_PUBKEY> --recipient <PROTOCOL_PUBKEY> \\
            --output secure_block.json [--upload ipfs]

    Decryption:
        agent-vault decrypt --input secure_block.json --asset <MINT> \\
            --keypair owner.json --output config.json

    Access check:
        agent-vault test-access --input secure_block.json --asset <MINT> \\
            --keypair owner.json --keypair stranger.json
"""
import argparse
import logging
import sys
from datetime import datetime
from typing import List, Optional

from . import config
from .access import AccessOutcome, build_secure_block, open_secure_block, test_access
from .codec import SecureBlock, parse, serialize
from .errors import NotAuthorized, SecureBlockError, StorageError, user_message
from .keys import SigningKeyPair, load_solana_keypair
from .storage import AzureBlobStore, BlobStore, IpfsBlobStore, fetch_secure_block, sha256_hex, store_secure_block


def _make_store(kind: str) -> BlobStore:
    if kind == "ipfs":
        return IpfsBlobStore()
    if kind == "azure":
        return AzureBlobStore()
    raise ValueError(f"Unknown store: {kind}")


def _read_block(path: str) -> SecureBlock:
    with open(path, "rb") as f:
        return parse(f.read())


def cmd_encrypt(args: argparse.Namespace) -> int:
    with open(args.input, "rb") as f:
        plaintext = f.read()

    block = build_secure_block(plaintext, args.asset, args.recipient)
    data = serialize(block)
    with open(args.output, "wb") as f:
        f.write(data)
    logging.info(f"✅ Secure block saved to {args.output}")

    uri: Optional[str] = None
    if args.upload != "none":
        uri = store_secure_block(_make_store(args.upload), block)

    logging.info("\n🔐 Encryption Summary:")
    logging.info(f"• Asset: {args.asset}")
    logging.info(f"• Recipients: {', '.join(sorted(block.keyring))}")
    logging.info(f"• Secure block: {args.output}")
    logging.info(f"• Secure block SHA-256: {sha256_hex(data)}")
    if uri:
        logging.info(f"• Storage URI: {uri}")
    return 0


def cmd_decrypt(args: argparse.Namespace) -> int:
    signing = load_solana_keypair(args.keypair)
    logging.info(f"✅ Loaded keypair for wallet {signing.identity}")

    if args.uri:
        block = fetch_secure_block(_make_store(args.store), args.uri)
    else:
        block = _read_block(args.input)

    plaintext = open_secure_block(block, args.asset, signing)
    if args.output:
        with open(args.output, "wb") as f:
            f.write(plaintext)
        logging.info(f"✅ Decrypted configuration saved to {args.output}")
    else:
        sys.stdout.write(plaintext.decode("utf-8", errors="replace") + "\n")

    logging.info("\n🔓 Decryption Summary:")
    logging.info(f"• Asset: {args.asset}")
    logging.info(f"• Wallet: {signing.identity}")
    return 0


def cmd_test_access(args: argparse.Namespace) -> int:
    block = _read_block(args.input)
    candidates: List[SigningKeyPair] = [load_solana_keypair(path) for path in args.keypair]

    results = test_access(block, args.asset, candidates)
    logging.info("\n📋 Access Results:")
    for result in results:
        mark = "✅ Yes" if result.outcome is AccessOutcome.GRANTED else "❌ No"
        detail = f" ({result.error})" if result.error else ""
        logging.info(f"• {result.identity.ljust(44)} {mark}{detail}")
    return 0 if all(r.outcome is not AccessOutcome.FAILED for r in results) else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-vault",
        description="Encrypt and decrypt agent configurations for Solana wallets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-file", default=config.LOG_FILE_PATH, metavar="PATH",
                        help="Also append log output to this file")
    sub = parser.add_subparsers(dest="command", required=True)

    enc = sub.add_parser("encrypt", help="Build a secure block for one or more wallets")
    enc.add_argument("--input", required=True, metavar="PATH", help="Plaintext configuration file - required")
    enc.add_argument("--asset", required=True, metavar="MINT", help="Asset (mint) address the block is bound to - required")
    enc.add_argument("--recipient", required=True, action="append", metavar="PUBKEY",
                     help="Base58 wallet address allowed to decrypt; repeat for each recipient")
    enc.add_argument("--output", default="secure_block.json", metavar="PATH",
                     help="Where to write the secure block (default: secure_block.json)")
    enc.add_argument("--upload", choices=["none", "ipfs", "azure"], default="none",
                     help="Also upload the block to storage (default: none)")
    enc.set_defaults(func=cmd_encrypt)

    dec = sub.add_parser("decrypt", help="Open a secure block with a wallet key file")
    source = dec.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", metavar="PATH", help="Secure block file")
    source.add_argument("--uri", metavar="URI", help="Storage URI of the secure block")
    dec.add_argument("--store", choices=["ipfs", "azure"], default="ipfs",
                     help="Store to fetch --uri from (default: ipfs)")
    dec.add_argument("--asset", required=True, metavar="MINT", help="Expected asset (mint) address - required")
    dec.add_argument("--keypair", required=True, metavar="PATH",
                     help="Solana key file (JSON array or base58) - required")
    dec.add_argument("--output", metavar="PATH", help="Where to write the plaintext (default: stdout)")
    dec.set_defaults(func=cmd_decrypt)

    chk = sub.add_parser("test-access", help="Report which wallets can open a secure block")
    chk.add_argument("--input", required=True, metavar="PATH", help="Secure block file - required")
    chk.add_argument("--asset", required=True, metavar="MINT", help="Expected asset (mint) address - required")
    chk.add_argument("--keypair", required=True, action="append", metavar="PATH",
                     help="Solana key file to test; repeat for each wallet")
    chk.set_defaults(func=cmd_test_access)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config.setup_logging(log_file=args.log_file)

    cmd_line = " ".join(sys.argv if argv is None else ["agent-vault", *argv])
    logging.info("=" * 80)
    logging.info(f"Script invoked: {cmd_line}")
    logging.info(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    logging.info("=" * 80)

    try:
        return args.func(args)
    except NotAuthorized as exc:
        logging.info(f"🚫 {user_message(exc)}")
        return 1
    except SecureBlockError as exc:
        logging.error(f"❌ {type(exc).__name__}: {user_message(exc)}")
        return 1
    except StorageError as exc:
        logging.error(f"❌ Storage error: {exc}")
        return 1
    except (OSError, ValueError) as exc:
        logging.error(f"❌ {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
