"""
Browser session helpers: reachability probe, driver factory and condition
waits used by the flows.
"""

from typing import Iterable

import requests
import structlog
from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from automation.src.config import AutomationSettings

logger = structlog.get_logger(__name__)


def check_server_running(url: str, timeout: float = 3.0) -> bool:
    """
    Probe a server with a HEAD request.

    Any HTTP response, whatever its status, counts as reachable.

    Args:
        url: Server URL
        timeout: Connect/read timeout in seconds

    Returns:
        True when the server answered
    """
    try:
        requests.head(url, timeout=timeout, allow_redirects=False)
    except requests.RequestException as e:
        logger.debug("server_unreachable", url=url, error=str(e))
        return False
    return True


def build_driver(settings: AutomationSettings) -> WebDriver:
    options = webdriver.ChromeOptions()
    if settings.headless:
        options.add_argument("--headless=new")
    options.add_argument("--window-size=1366,900")
    driver = webdriver.Chrome(options=options)
    driver.set_page_load_timeout(settings.navigation_timeout)
    return driver


def text_xpath(texts: Iterable[str]) -> str:
    """XPath matching any element whose own text contains one of ``texts``."""
    clauses = " or ".join(f"contains(text(),'{text}')" for text in texts)
    return f"//*[{clauses}]"


def wait_for_url_contains(driver: WebDriver, fragments: Iterable[str], timeout: float) -> str:
    """
    Wait until the current URL contains any of the fragments.

    Returns:
        The matching URL

    Raises:
        TimeoutException: No fragment appeared in time
    """
    fragments = tuple(fragments)
    WebDriverWait(driver, timeout).until(lambda d: any(f in d.current_url for f in fragments))
    return driver.current_url


def wait_for_text(driver: WebDriver, texts: Iterable[str], timeout: float) -> WebElement:
    return WebDriverWait(driver, timeout).until(
        EC.presence_of_element_located((By.XPATH, text_xpath(texts)))
    )


def wait_until_clickable(driver: WebDriver, element: WebElement, timeout: float) -> WebElement:
    return WebDriverWait(driver, timeout).until(EC.element_to_be_clickable(element))


def click(driver: WebDriver, element: WebElement) -> None:
    """Scroll an element into view and click it, falling back to a JS click."""
    driver.execute_script("arguments[0].scrollIntoView({block: 'center'});", element)
    try:
        element.click()
    except WebDriverException:
        logger.debug("native_click_failed")
        driver.execute_script("arguments[0].click();", element)


def fill(element: WebElement, value: str) -> None:
    element.clear()
    element.send_keys(value)
