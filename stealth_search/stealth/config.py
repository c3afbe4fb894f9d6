"""
Configuration models for the stealth module.
"""

from __future__ import annotations

from typing import Literal

import msgspec


class StealthConfig(msgspec.Struct, omit_defaults=True):
    """
    Configuration for stealth and anti-detection features.

    Attributes:
        enabled:
            Whether stealth init scripts and launch flags are applied.
        spoof_webdriver:
            Whether to hide navigator.webdriver and related automation flags.
        spoof_navigator:
            Whether to align navigator languages, platform, plugins and
            screen metrics with the session identity.
        simulate_human_behavior:
            Whether to add mouse movement and reading-style scrolling on
            result pages.
        block_resources:
            Whether to abort font and media requests. Images are left alone
            because content extraction resolves their URLs.
        accept_cookies:
            Whether to dismiss cookie-consent dialogs on search pages.
        behavior_profile:
            Intensity of simulated behavior.
    """

    enabled: bool = True
    spoof_webdriver: bool = True
    spoof_navigator: bool = True
    simulate_human_behavior: bool = True
    block_resources: bool = True
    accept_cookies: bool = True
    behavior_profile: Literal["minimal", "default", "aggressive"] = "default"
