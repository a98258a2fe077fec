from __future__ import annotations

import argparse
from contextlib import contextmanager
import json
import logging
from pathlib import Path
import signal
from typing import Iterator, Sequence

from app.errors import EXIT_OK, EXIT_UNEXPECTED, ProvisioningError
from app.verifier import CancellationToken, VerificationState
from cli.output import (
    print_batch_report,
    print_capabilities,
    print_catalog_rows,
    print_provision_outcome,
    print_provisioning_error,
    write_json,
)
from cli.runner import CliSession
from config.model_catalog import catalog_to_payload


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--catalog", default=None, help="JSON model catalog overriding the defaults.")
    common.add_argument("--registry-bin", default=None, help="Model-serving CLI to call (default: ollama).")
    common.add_argument("--verbose", "-v", action="store_true")

    parser = argparse.ArgumentParser(prog="autoprovision")
    sub = parser.add_subparsers(dest="command", required=True)

    provision = sub.add_parser("provision", parents=[common])
    provision.add_argument("--max-attempts", type=int, default=None)
    provision.add_argument("--interval", type=float, default=None)
    provision.add_argument("--deadline", type=float, default=None)
    provision.add_argument("--serve", action="store_true", help="Keep the model server running afterwards.")

    sub.add_parser("probe", parents=[common])

    catalog = sub.add_parser("catalog", parents=[common])
    catalog.add_argument("--json", dest="as_json", action="store_true")

    sub.add_parser("serve", parents=[common])

    ask = sub.add_parser("ask", parents=[common])
    ask.add_argument("prompt")
    ask.add_argument("--model", default=None)

    batch = sub.add_parser("batch", parents=[common])
    batch.add_argument("--file", required=True)
    batch.add_argument("--model", default=None)
    batch.add_argument("--max-concurrency", type=int, default=None)
    batch.add_argument("--json-out", default=None)

    return parser


@contextmanager
def cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    """Route Ctrl-C to the token so an operator abort ends verification as TIMED_OUT."""
    try:
        previous = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    except ValueError:
        # Signal handlers can only be installed from the main thread.
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _serve_forever(session: CliSession) -> int:
    server = session.start_server()
    print(f"Model server running at {session.config().server.base_url} (Ctrl-C to stop)")
    try:
        server.wait()
    except KeyboardInterrupt:
        print("Stopping model server.")
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(args.verbose)

    session = CliSession(catalog_path=args.catalog, registry_bin=args.registry_bin)

    try:
        if args.command == "provision":
            session.override_verification(
                max_attempts=args.max_attempts,
                interval_s=args.interval,
                deadline_s=args.deadline,
            )
            token = CancellationToken()
            with cancel_on_interrupt(token):
                outcome = session.provision(cancel=token)
            print_provision_outcome(outcome)
            if args.serve and outcome.verification is VerificationState.CONFIRMED:
                return _serve_forever(session)
            return outcome.exit_code
        if args.command == "probe":
            print_capabilities(session.probe())
            return EXIT_OK
        if args.command == "catalog":
            if args.as_json:
                print(json.dumps(catalog_to_payload(session.config().catalog), indent=2))
            else:
                print_catalog_rows(session.catalog_rows())
            return EXIT_OK
        if args.command == "serve":
            return _serve_forever(session)
        if args.command == "ask":
            print(session.ask(args.prompt, model=args.model))
            return EXIT_OK
        if args.command == "batch":
            report = session.batch(
                args.file,
                model=args.model,
                max_concurrency=args.max_concurrency,
            )
            json_out = Path(args.json_out).expanduser().resolve() if args.json_out else None
            if json_out is not None:
                write_json(json_out, report.to_payload())
            print_batch_report(report, json_out=json_out)
            return EXIT_OK if report.failure_count == 0 else EXIT_UNEXPECTED

        parser.error(f"Unknown command: {args.command}")
        return 2
    except ProvisioningError as exc:
        print_provisioning_error(exc)
        return exc.exit_code
    except Exception as exc:
        print(f"Error: {exc}")
        return EXIT_UNEXPECTED
    finally:
        session.stop_server()


if __name__ == "__main__":
    raise SystemExit(main())
