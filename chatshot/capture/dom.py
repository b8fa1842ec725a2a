"""In-page scripts shared by generic and chat captures."""

import logging

from playwright.async_api import Page

logger = logging.getLogger(__name__)


INSTANT_SCROLL_JS = """
(selector) => {
    const element = document.querySelector(selector);
    if (element) element.scrollIntoView({ behavior: "instant", block: "start" });
}
"""

SET_ZOOM_JS = """
(zoom) => {
    document.body.style.zoom = zoom;
}
"""

HIDE_EXCEPT_JS = """
(selectors) => {
    document.querySelectorAll("body *").forEach(element => {
        const isTarget = selectors.some(sel => element.matches(sel)),
            isChildOfTarget = selectors.some(sel => element.closest(sel)),
            isAncestorOfTarget = selectors.some(sel => element.querySelector(sel));

        if (!isTarget && !isChildOfTarget && !isAncestorOfTarget) element.style.display = "none";
    });
}
"""

INNER_SIZE_JS = """
() => ({ width: window.innerWidth, height: window.innerHeight })
"""


async def instant_scroll(page: Page, selector: str) -> None:
    """Scroll an element to the top of the viewport without animation."""
    await page.evaluate(INSTANT_SCROLL_JS, selector)


async def set_zoom(page: Page, zoom: float) -> None:
    if zoom == 1:
        return
    await page.evaluate(SET_ZOOM_JS, zoom)


async def hide_except(page: Page, selectors) -> None:
    """Hide every element that is not a target, inside one, or containing one."""
    if isinstance(selectors, str):
        selectors = [selectors]
    await page.evaluate(HIDE_EXCEPT_JS, list(selectors))


async def inner_size(page: Page) -> dict:
    return await page.evaluate(INNER_SIZE_JS)
