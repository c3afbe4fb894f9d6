"""
Behavioral stealth to simulate human interaction patterns.
"""

from __future__ import annotations

import asyncio
import random

from playwright.async_api import Page

from stealth_search.stealth.config import StealthConfig


def _bezier_point(
    t: float,
    p0: tuple[int, int],
    p1: tuple[int, int],
    p2: tuple[int, int],
    p3: tuple[int, int],
) -> tuple[int, int]:
    """Point on a cubic Bezier curve at time t (0..1)."""
    u = 1 - t
    x = u**3 * p0[0] + 3 * u**2 * t * p1[0] + 3 * u * t**2 * p2[0] + t**3 * p3[0]
    y = u**3 * p0[1] + 3 * u**2 * t * p1[1] + 3 * u * t**2 * p2[1] + t**3 * p3[1]
    return int(x), int(y)


def generate_mouse_path(
    start: tuple[int, int],
    end: tuple[int, int],
    steps: int = 20,
    deviation: int = 50,
    rng: random.Random | None = None,
) -> list[tuple[int, int]]:
    """
    Generate a human-like mouse path using a cubic Bezier curve.

    Control points sit roughly one and two thirds along the straight line,
    offset randomly to give the path curvature. Time steps are eased so the
    pointer moves slower near both ends.

    Args:
        start: (x, y) starting point
        end: (x, y) ending point
        steps: Number of segments in the path
        deviation: Magnitude of control point deviation
        rng: Random source

    Returns:
        steps + 1 points, first equal to start and last equal to end
    """
    rng = rng or random.Random()
    dx = end[0] - start[0]
    dy = end[1] - start[1]

    p1 = (
        int(start[0] + dx * 0.33 + rng.randint(-deviation, deviation)),
        int(start[1] + dy * 0.33 + rng.randint(-deviation, deviation)),
    )
    p2 = (
        int(start[0] + dx * 0.66 + rng.randint(-deviation, deviation)),
        int(start[1] + dy * 0.66 + rng.randint(-deviation, deviation)),
    )

    path = []
    for i in range(steps + 1):
        t = i / steps
        eased_t = t * t * (3 - 2 * t)
        path.append(_bezier_point(eased_t, start, p1, p2, end))

    return path


async def human_mouse_move(
    page: Page,
    config: StealthConfig,
    rng: random.Random | None = None,
) -> None:
    """Move the pointer between two random points of the viewport."""
    rng = rng or random.Random()
    viewport = page.viewport_size or {"width": 1280, "height": 800}
    width = viewport["width"]
    height = viewport["height"]

    if config.behavior_profile == "minimal":
        await page.mouse.move(rng.randint(0, width), rng.randint(0, height), steps=5)
        return

    start = (
        rng.randint(int(width * 0.1), int(width * 0.9)),
        rng.randint(int(height * 0.1), int(height * 0.9)),
    )
    target = (
        rng.randint(int(width * 0.1), int(width * 0.9)),
        rng.randint(int(height * 0.1), int(height * 0.9)),
    )
    steps = (
        rng.randint(20, 50)
        if config.behavior_profile == "aggressive"
        else rng.randint(15, 30)
    )

    for x, y in generate_mouse_path(start, target, steps=steps, rng=rng):
        await page.mouse.move(x, y, steps=1)
        await asyncio.sleep(rng.uniform(0.001, 0.005))


async def human_scroll(
    page: Page,
    config: StealthConfig,
    rng: random.Random | None = None,
) -> None:
    """
    Scroll like a reader: scroll, pause, sometimes scroll back.
    """
    rng = rng or random.Random()

    if config.behavior_profile == "minimal":
        await page.mouse.wheel(0, rng.randint(300, 800))
        return

    segments = (
        rng.randint(3, 6)
        if config.behavior_profile == "aggressive"
        else rng.randint(2, 4)
    )

    for _ in range(segments):
        step_y = rng.randint(150, 500) / 5
        for _ in range(5):
            await page.mouse.wheel(0, step_y)
            await asyncio.sleep(rng.uniform(0.01, 0.05))

        pause = rng.uniform(0.5, 2.0)
        if rng.random() < 0.2:
            pause += rng.uniform(1.0, 3.0)
        await asyncio.sleep(pause)

        if rng.random() < 0.25:
            await page.mouse.wheel(0, -rng.randint(50, 200))
            await asyncio.sleep(rng.uniform(0.5, 1.5))


async def human_type(
    page: Page,
    selector: str,
    text: str,
    config: StealthConfig,
    rng: random.Random | None = None,
) -> None:
    """
    Type into a field with variable per-key delays and word-boundary pauses.

    No typos are injected: login forms must receive the exact credentials.
    """
    rng = rng or random.Random()
    await page.locator(selector).click()

    if config.behavior_profile == "minimal":
        await page.keyboard.type(text, delay=rng.randint(10, 50))
        return

    thinking_rate = 0.08 if config.behavior_profile == "aggressive" else 0.04

    for char in text:
        if char == " " and rng.random() < thinking_rate:
            await asyncio.sleep(rng.uniform(0.5, 1.5))
        await page.keyboard.type(char, delay=rng.uniform(50, 150))


async def simulate_reading(
    page: Page,
    config: StealthConfig,
    rng: random.Random | None = None,
) -> None:
    """Mouse movement followed by reading-style scrolling."""
    if not (config.enabled and config.simulate_human_behavior):
        return

    await human_mouse_move(page, config, rng)
    await human_scroll(page, config, rng)
