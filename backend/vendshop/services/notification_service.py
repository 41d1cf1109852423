# Overview: Outbound notifications; password reset delivery.

"""
Notifier seam for password reset links.

There is no mail transport: the default notifier writes the link to the
application log. A different notifier can be installed per app with
install_notifier() (tests use this to capture links).
"""

from __future__ import annotations

from flask import current_app

EXTENSION_KEY = "vendshop.notifier"


class LogNotifier:
    """Writes reset links to the Flask application log."""

    def send_password_reset(self, to: str, reset_link: str) -> None:
        current_app.logger.info("Password reset link for %s: %s", to, reset_link)


def install_notifier(app, notifier) -> None:
    app.extensions[EXTENSION_KEY] = notifier


def get_notifier():
    notifier = current_app.extensions.get(EXTENSION_KEY)
    if notifier is None:
        notifier = LogNotifier()
        current_app.extensions[EXTENSION_KEY] = notifier
    return notifier
