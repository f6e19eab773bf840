"""
Layered element lookup.

A form field is described by a ``LocatorChain``: an ordered list of
locators from the most specific (``name``/``id``) to the most generic
(label-relative XPath). ``find_first_present`` tries each in turn and
returns the first element that becomes visible within the wait budget.
"""

from dataclasses import dataclass
from typing import List, Tuple

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait


@dataclass(frozen=True)
class Locator:
    """One Selenium lookup: a ``By`` strategy and its selector."""

    strategy: str
    value: str

    def as_tuple(self) -> Tuple[str, str]:
        return (self.strategy, self.value)

    def __str__(self) -> str:
        return f"By({self.strategy}, {self.value})"


def xpath(value: str) -> Locator:
    return Locator(By.XPATH, value)


def css(value: str) -> Locator:
    return Locator(By.CSS_SELECTOR, value)


def by_name(value: str) -> Locator:
    return Locator(By.NAME, value)


def by_id(value: str) -> Locator:
    return Locator(By.ID, value)


@dataclass(frozen=True)
class LocatorChain:
    """Named, ordered fallbacks for one page element."""

    name: str
    locators: Tuple[Locator, ...]

    def __post_init__(self) -> None:
        if not self.locators:
            raise ValueError(f"Locator chain {self.name!r} is empty")


class LocatorChainError(Exception):
    """No locator of a chain produced a visible element."""

    def __init__(self, chain: str, attempts: List[str]):
        self.chain = chain
        self.attempts = list(attempts)
        self.message = f"{self.chain}: None of the expected elements were found. Tried: {', '.join(self.attempts)}"
        super().__init__(self.message)


def find_first_present(
    driver: WebDriver,
    chain: LocatorChain,
    timeout: float = 10.0,
    poll_frequency: float = 0.5,
) -> WebElement:
    """
    Return the first element of the chain that is located and visible.

    Args:
        driver: Active WebDriver
        chain: Locators to try in order
        timeout: Wait budget per locator (seconds)
        poll_frequency: Poll interval while waiting

    Returns:
        The visible element

    Raises:
        LocatorChainError: Every locator timed out; lists each attempt
    """
    attempts: List[str] = []
    for locator in chain.locators:
        try:
            return WebDriverWait(driver, timeout, poll_frequency=poll_frequency).until(
                EC.visibility_of_element_located(locator.as_tuple())
            )
        except WebDriverException:
            attempts.append(str(locator))
    raise LocatorChainError(chain.name, attempts)
