"""
Entry points for the UI flows.

Each console script checks that the frontend is reachable, runs one flow
in a fresh Chrome session and exits 0 on success, 1 on failure.
"""

import sys
from typing import Callable, Optional, TextIO

import structlog
from selenium.webdriver.remote.webdriver import WebDriver

from automation.src.browser import build_driver, check_server_running
from automation.src.config import AutomationSettings, get_settings
from automation.src.flows import FLOWS
from automation.src.flows.base import Flow, FlowContext, StepReporter
from shared.logging import configure_logging

logger = structlog.get_logger(__name__)

START_FRONTEND_TIP = """
Please start your frontend server first:
  cd frontend
  npm run dev

Or set BASE_URL if your server runs on a different port:
  BASE_URL=http://localhost:5175 {command}
"""

CONNECTION_REFUSED_MARKERS = ("ERR_CONNECTION_REFUSED", "ECONNREFUSED", "Connection refused")


def run_flow(
    flow: Flow,
    settings: Optional[AutomationSettings] = None,
    out: TextIO = sys.stdout,
    driver_factory: Callable[[AutomationSettings], WebDriver] = build_driver,
    reachable: Callable[[str, float], bool] = check_server_running,
    command: str = "booknview-e2e",
) -> int:
    """
    Run one flow against the configured frontend.

    Args:
        flow: Flow function taking a FlowContext
        settings: Automation settings (defaults to the environment)
        out: Stream receiving the step log
        driver_factory: Builds the WebDriver
        reachable: Server probe
        command: Command name shown in the start-frontend tip

    Returns:
        Process exit code: 0 on success, 1 on failure
    """
    settings = settings or get_settings()
    name = getattr(flow, "__name__", "flow")

    print(f"Checking if frontend server is running at {settings.root_url}...", file=out)
    if not reachable(settings.root_url, settings.reachability_timeout):
        print(f"\nERROR: Frontend server is not running at {settings.root_url}", file=out)
        print(START_FRONTEND_TIP.format(command=command), file=out)
        logger.error("frontend_unreachable", url=settings.root_url, flow=name)
        return 1
    print("Frontend server is running", file=out)

    driver: Optional[WebDriver] = None
    try:
        driver = driver_factory(settings)
        flow(FlowContext(driver=driver, settings=settings, steps=StepReporter(out)))
    except Exception as e:
        print(f"\n{name} failed: {e}", file=out)
        logger.error("flow_failed", flow=name, error=str(e), error_type=type(e).__name__)
        if any(marker in str(e) for marker in CONNECTION_REFUSED_MARKERS):
            print("\nTip: Make sure your frontend server is running.", file=out)
            print("   Start it with: cd frontend && npm run dev", file=out)
        return 1
    finally:
        if driver is not None:
            driver.quit()

    print(f"\n{name} completed successfully", file=out)
    logger.info("flow_passed", flow=name)
    return 0


def main(flow_name: str, command: str) -> None:
    """Run a named flow and exit with its status."""
    settings = get_settings()
    configure_logging(log_level=settings.log_level, json_logs=False, service_name=settings.service_name)
    sys.exit(run_flow(FLOWS[flow_name], settings, command=command))


def main_owner_login() -> None:
    main("owner-login", "booknview-e2e-login")


def main_add_movie() -> None:
    main("add-movie", "booknview-e2e-add-movie")


def main_show_management() -> None:
    main("show-management", "booknview-e2e-show-management")


def main_screen_management() -> None:
    main("screen-management", "booknview-e2e-screen-management")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "owner-login", "python -m automation.src.runner")
