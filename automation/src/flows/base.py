"""Shared flow plumbing: the per-run context and the step reporter."""

from dataclasses import dataclass, field
from typing import Callable, Optional, TextIO

import structlog
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement

from automation.src.browser import click, wait_for_url_contains
from automation.src.config import AutomationSettings
from automation.src.locators import LocatorChain, LocatorChainError, find_first_present

logger = structlog.get_logger(__name__)


@dataclass
class StepReporter:
    """Prints numbered steps and their outcomes to the console."""

    out: TextIO
    count: int = 0

    def step(self, title: str) -> None:
        self.count += 1
        print(f"\nStep {self.count}: {title}", file=self.out)
        logger.debug("flow_step", step=self.count, title=title)

    def ok(self, text: str) -> None:
        print(f"  ok: {text}", file=self.out)

    def warn(self, text: str) -> None:
        print(f"  warning: {text}", file=self.out)


@dataclass
class FlowContext:
    """Everything a flow needs for one run."""

    driver: WebDriver
    settings: AutomationSettings
    steps: StepReporter
    poll_frequency: float = field(default=0.5)

    def find(self, chain: LocatorChain, timeout: Optional[float] = None) -> WebElement:
        return find_first_present(
            self.driver,
            chain,
            timeout if timeout is not None else self.settings.locator_timeout,
            poll_frequency=self.poll_frequency,
        )


Flow = Callable[[FlowContext], None]


def navigate_from_dashboard(ctx: FlowContext, chain: LocatorChain, fallback_path: str) -> None:
    """
    Click a dashboard quick action, or open its page directly when the
    button cannot be found.
    """
    try:
        click(ctx.driver, ctx.find(chain))
        wait_for_url_contains(ctx.driver, (fallback_path,), ctx.settings.navigation_timeout)
        ctx.steps.ok(f"navigated to {fallback_path}")
    except (WebDriverException, LocatorChainError) as e:
        logger.info("quick_action_fallback", chain=chain.name, error=str(e))
        ctx.steps.warn(f"{chain.name} not usable, opening {fallback_path} directly")
        ctx.driver.get(ctx.settings.url(fallback_path))
