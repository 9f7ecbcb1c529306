# Main Entry Point - Credential Setup CLI
#
#   devcreds                     Interactive setup walkthrough
#   devcreds --list              Print the credential catalog
#   devcreds --verify            Presence report for well-known credentials
#   devcreds --remove KEY        Remove one credential
#   devcreds --write-descriptor  (Re)write the deferred environment descriptor

import argparse
import getpass
import sys
from typing import List, Optional

from . import __version__
from .materializer import EnvironmentMaterializer
from .setup_wizard import SetupWizard, render_catalog, render_verify
from .vault import (
    CipherUnavailable,
    CredentialStore,
    CredentialStoreError,
    StoreNotInitialized,
)
from .core import EventSeverity, EventType, get_audit_logger


def _unlock(store: CredentialStore) -> None:
    """Open an existing store; never creates one outside the walkthrough."""
    if not store.is_initialized:
        raise StoreNotInitialized("No credentials configured yet. Run 'devcreds' to set up.")
    passphrase = store.config.passphrase or getpass.getpass("Enter master passphrase: ")
    store.open(passphrase)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devcreds",
        description="Secure local credential management for development tooling",
        epilog="Run without arguments for interactive setup.",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--list",
        action="store_true",
        help="List configured credentials"
    )
    mode.add_argument(
        "--verify",
        action="store_true",
        help="Verify credential configuration (values are never shown)"
    )
    mode.add_argument(
        "--remove",
        metavar="KEY",
        help="Remove a stored credential"
    )
    mode.add_argument(
        "--write-descriptor",
        action="store_true",
        help="Write the environment descriptor used by downstream tools"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"devcreds v{__version__}"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for devcreds."""
    args = build_parser().parse_args(argv)

    try:
        store = CredentialStore()

        if args.list:
            print("📋 Configured Credentials")
            print("=========================")
            for line in render_catalog(store.list()):
                print(line)
            return 0

        if args.remove:
            if store.remove(args.remove):
                print(f"✅ Removed: {args.remove}")
            else:
                print(f"ℹ️ No credential named {args.remove}")
            return 0

        if args.verify:
            with store:
                _unlock(store)
                print("🔍 Verifying credentials...")
                for line in render_verify(store.verify()):
                    print(line)
            return 0

        if args.write_descriptor:
            path = EnvironmentMaterializer(store).write_descriptor(store.config.descriptor_path)
            print(f"✅ Environment descriptor written to {path}")
            return 0

        with store:
            failures = SetupWizard(store).run()
        print()
        print("🛠️ Usage:")
        print("  • Access credentials: from devcreds import helper")
        print("  • Verify setup:       devcreds --verify")
        print("  • List credentials:   devcreds --list")
        print("  • Update credentials: devcreds (run again)")
        return 1 if failures else 0

    except CipherUnavailable as e:
        get_audit_logger().log_event(
            event_type=EventType.CIPHER_UNAVAILABLE,
            severity=EventSeverity.CRITICAL,
            message=str(e),
        )
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except CredentialStoreError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"❌ Credential store I/O error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
