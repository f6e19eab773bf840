"""
Show management flow: assign the first movie to the first screen with up
to three available show timings.
"""

import structlog
from selenium.common.exceptions import TimeoutException
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import WebDriverWait

from automation.src.browser import click, wait_for_text
from automation.src.flows.base import FlowContext, navigate_from_dashboard
from automation.src.flows.owner_login import open_dashboard
from automation.src.locators import LocatorChain, xpath

logger = structlog.get_logger(__name__)

MAX_TIMINGS = 3

TIMING_BUTTON_XPATH = "//button[contains(@class,'bg-blue-600') and contains(text(),':')]"

SUCCESS_TEXTS = ("success", "assigned", "saved", "Existing Shows")

SHOW_MANAGEMENT = LocatorChain(
    "Show Management button",
    (
        xpath("//button[.//i[contains(@class,'fa-film')] and .//span[contains(.,'Show Management')]]"),
        xpath("//button[contains(.,'Show Management')]"),
        xpath("//button[.//span[contains(.,'Show Management')]]"),
    ),
)

MOVIE_SELECT = LocatorChain(
    "movie select",
    (
        xpath("//select[.//option[contains(text(),'Select a movie')]]"),
        xpath("//label[contains(.,'Movie')]/following::select[1]"),
        xpath("//select[contains(@class,'bg-black')]"),
    ),
)

SCREEN_SELECT = LocatorChain(
    "screen select",
    (
        xpath("//select[.//option[contains(text(),'Select a screen') or contains(text(),'Loading screens')]]"),
        xpath("//label[contains(.,'Screen')]/following::select[1]"),
    ),
)

ASSIGN_BUTTON = LocatorChain(
    "Assign button",
    (
        xpath("//button[contains(.,'Assign Movie to Screen')]"),
        xpath("//button[contains(.,'Assign')]"),
    ),
)


def select_first_option(ctx: FlowContext, chain: LocatorChain, what: str) -> str:
    """
    Pick the first real option of a select (index 0 is the placeholder).

    Waits for the options to load.

    Raises:
        AssertionError: The select never offered a real option
    """
    select = ctx.find(chain)

    def loaded_options(driver):
        options = select.find_elements(By.TAG_NAME, "option")
        return options if len(options) > 1 else False

    try:
        options = WebDriverWait(ctx.driver, ctx.settings.locator_timeout).until(loaded_options)
    except TimeoutException:
        raise AssertionError(f"No {what}s available. Please add a {what} first.")
    choice = options[1]
    text = choice.text
    choice.click()
    ctx.steps.ok(f"{what} selected: {text}")
    return text


def toggle_timings(ctx: FlowContext, limit: int = MAX_TIMINGS) -> int:
    try:
        buttons = WebDriverWait(ctx.driver, ctx.settings.locator_timeout).until(
            lambda d: d.find_elements(By.XPATH, TIMING_BUTTON_XPATH)
        )
    except TimeoutException:
        raise AssertionError("No available show timings found. Please configure show timings first.")
    for button in buttons[:limit]:
        label = button.text
        click(ctx.driver, button)
        ctx.steps.ok(f"timing added: {label}")
    return min(len(buttons), limit)


def show_management(ctx: FlowContext) -> None:
    """Assign a movie to a screen and check the confirmation."""
    ctx.steps.step("Logging in as theatre owner")
    open_dashboard(ctx)

    ctx.steps.step("Opening Show Management")
    navigate_from_dashboard(ctx, SHOW_MANAGEMENT, "/theatre-owner/shows")

    ctx.steps.step("Selecting a movie")
    select_first_option(ctx, MOVIE_SELECT, "movie")

    ctx.steps.step("Selecting a screen")
    select_first_option(ctx, SCREEN_SELECT, "screen")

    ctx.steps.step("Choosing show timings")
    toggle_timings(ctx)

    ctx.steps.step("Assigning the movie to the screen")
    click(ctx.driver, ctx.find(ASSIGN_BUTTON))

    ctx.steps.step("Verifying the assignment")
    confirmation = wait_for_text(ctx.driver, SUCCESS_TEXTS, ctx.settings.navigation_timeout)
    ctx.steps.ok(f"confirmation: {confirmation.text}")
