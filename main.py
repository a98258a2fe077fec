import logging
import sys

from utils.terminal_ui import Color, color_print

from app.errors import EXIT_OK, ProvisioningError
from app.pipeline import ProvisionPipeline
from app.runtime_lifecycle import RuntimeLifecycle
from app.settings import build_settings, get_app_base_dir
from app.verifier import VerificationState
from cli.output import print_provision_outcome, print_provisioning_error
from services.model_server_process import ModelServerProcess


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    catalog_path = argv[0] if argv else None
    logging.basicConfig(level=logging.WARNING)

    color_print("Building settings", color=Color.BLUE)
    try:
        app_cfg = build_settings(catalog_path)
        color_print("Selecting and provisioning the best model for your system", color=Color.BLUE)
        outcome = ProvisionPipeline(app_cfg=app_cfg).run()
    except ProvisioningError as exc:
        print_provisioning_error(exc)
        return exc.exit_code

    print_provision_outcome(outcome)
    if outcome.verification is not VerificationState.CONFIRMED:
        return outcome.exit_code

    # ----- SERVE STAGE -----
    server = ModelServerProcess(
        server_cfg=app_cfg.server,
        log_path=get_app_base_dir() / "logs" / "model-server.log",
        registry_bin=app_cfg.registry.registry_bin,
    )
    RuntimeLifecycle().register_server(server)
    server.start()
    color_print(f"Model server running at {app_cfg.server.base_url} (Ctrl-C to stop)", color=Color.GREEN)
    try:
        server.wait()
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
