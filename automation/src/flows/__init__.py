"""UI flows runnable through ``automation.src.runner``."""

from automation.src.flows.add_movie import add_movie
from automation.src.flows.base import FlowContext, StepReporter
from automation.src.flows.owner_login import owner_login
from automation.src.flows.screen_management import screen_management
from automation.src.flows.show_management import show_management

FLOWS = {
    "owner-login": owner_login,
    "add-movie": add_movie,
    "show-management": show_management,
    "screen-management": screen_management,
}

__all__ = [
    "FLOWS",
    "FlowContext",
    "StepReporter",
    "add_movie",
    "owner_login",
    "screen_management",
    "show_management",
]
