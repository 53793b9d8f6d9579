"""
Master Settings - admin console for the bulk placement actions.

Three action cards:
- Reset Choices  (warning) - clear choices/allocations, keep preferred domains
- Full Reset     (danger)  - also wipe preferred domains
- Download       (neutral) - save student_temp_passwords.xlsx

Each handler marks its card busy while it runs, reports the outcome through
a notifier (success/error toasts) and always clears the busy flag.

CLI:
    python -m placement_portal.client.master_settings --token <jwt> reset-choices
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from placement_portal.client.admin_client import AdminClient, AdminClientError
from placement_portal.core.logging_config import setup_logging

logger = logging.getLogger(__name__)

DOWNLOAD_FILENAME = "student_temp_passwords.xlsx"
PROCESSING_LABEL = "Processing..."


@dataclass(frozen=True)
class ActionCard:
    key: str
    title: str
    description: str
    button_text: str
    tone: str = "danger"


ACTION_CARDS = [
    ActionCard(
        key="resetChoices",
        title="Reset All Student Choices",
        description="Clears all student choices, allocations, and resets company filled seats. "
                    "This does not remove preferred domains.",
        button_text="Reset Choices",
        tone="warning",
    ),
    ActionCard(
        key="fullReset",
        title="Full Reset (Wipe Data)",
        description="Clears preferred domains, choices, allocation status, and resets company "
                    "filled seats. Use with caution.",
        button_text="Full Reset",
        tone="danger",
    ),
    ActionCard(
        key="downloadPasswords",
        title="Download Temp Passwords",
        description="Download the Excel file containing all student temporary passwords.",
        button_text="Download",
        tone="neutral",
    ),
]


class ConsoleNotifier:
    """Toast stand-in for the terminal: prints and logs each notification."""

    def success(self, message: str) -> None:
        logger.info(message)
        print(f"✅ {message}")

    def error(self, message: str) -> None:
        logger.error(message)
        print(f"❌ {message}", file=sys.stderr)


def error_text(err, fallback: str) -> str:
    """A string error as-is, else its message (or text), else the fallback."""
    if isinstance(err, str):
        return err
    message = err.message if hasattr(err, "message") else str(err)
    return message or fallback


class MasterSettings:

    def __init__(self, client: AdminClient, notifier=None, download_dir: str = "."):
        self.client = client
        self.notifier = notifier or ConsoleNotifier()
        self.download_dir = download_dir
        self.loading_key = ""

    def is_loading(self, key: str) -> bool:
        return self.loading_key == key

    def render(self) -> List[dict]:
        """Current state of each card: label switches to Processing... while busy."""
        cards = []
        for card in ACTION_CARDS:
            busy = self.is_loading(card.key)
            cards.append({
                "key": card.key,
                "title": card.title,
                "description": card.description,
                "tone": card.tone,
                "label": PROCESSING_LABEL if busy else card.button_text,
                "disabled": busy,
            })
        return cards

    def handle_reset_choices(self) -> bool:
        try:
            self.loading_key = "resetChoices"
            response = self.client.reset_student_choices()
            self.notifier.success(response.get("message") or "All student choices reset successfully")
            return True
        except AdminClientError as err:
            self.notifier.error(error_text(err, "Failed to reset choices"))
            return False
        finally:
            self.loading_key = ""

    def handle_full_reset(self) -> bool:
        try:
            self.loading_key = "fullReset"
            response = self.client.full_reset_students()
            self.notifier.success(response.get("message") or "Full reset completed successfully")
            return True
        except AdminClientError as err:
            self.notifier.error(error_text(err, "Full reset failed"))
            return False
        finally:
            self.loading_key = ""

    def handle_download_passwords(self) -> Optional[str]:
        """Save the workbook into download_dir and return its path."""
        try:
            self.loading_key = "downloadPasswords"
            content = self.client.download_student_temp_passwords()
            os.makedirs(self.download_dir, exist_ok=True)
            path = os.path.join(self.download_dir, DOWNLOAD_FILENAME)
            with open(path, "wb") as f:
                f.write(content)
            self.notifier.success("Password file downloaded")
            return path
        except (AdminClientError, OSError) as err:
            self.notifier.error(error_text(err, "Failed to download file"))
            return None
        finally:
            self.loading_key = ""

    def handlers(self) -> Dict[str, Callable]:
        return {
            "resetChoices": self.handle_reset_choices,
            "fullReset": self.handle_full_reset,
            "downloadPasswords": self.handle_download_passwords,
        }

    def dispatch(self, key: str):
        """Run the handler of the card with this key (a button click)."""
        if self.loading_key:
            raise RuntimeError(f"Action '{self.loading_key}' is still running")
        try:
            handler = self.handlers()[key]
        except KeyError:
            raise ValueError(f"Unknown action: {key}")
        return handler()


CLI_ACTIONS = {
    "reset-choices": "resetChoices",
    "full-reset": "fullReset",
    "download-passwords": "downloadPasswords",
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Placement portal master settings")
    parser.add_argument("action", choices=sorted(CLI_ACTIONS) + ["list"])
    parser.add_argument("--base-url", default=os.getenv("PORTAL_BASE_URL", "http://localhost:8000"))
    parser.add_argument("--token", default=os.getenv("PORTAL_TOKEN"))
    parser.add_argument("--output-dir", default=".")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt for resets")
    args = parser.parse_args(argv)

    setup_logging("console", os.getenv("LOG_LEVEL", "WARNING"))
    page = MasterSettings(AdminClient(args.base_url, args.token), download_dir=args.output_dir)

    if args.action == "list":
        for card in page.render():
            print(f"[{card['tone']}] {card['title']}: {card['description']}")
        return 0

    if args.action in ("reset-choices", "full-reset") and not args.yes:
        answer = input(f"Run '{args.action}'? This cannot be undone. [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted")
            return 1

    result = page.dispatch(CLI_ACTIONS[args.action])
    return 0 if result else 1


if __name__ == "__main__":
    sys.exit(main())
