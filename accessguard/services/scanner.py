"""Accessibility scanner: headless Chromium + axe-core."""
import logging
import math
import time
from datetime import datetime
from typing import Any

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Playwright, Route, async_playwright
from playwright.async_api import Request as BrowserRequest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from accessguard.config import get_settings
from accessguard.models.scan import Impact
from accessguard.schemas.scan import ScanResult, Violation, ViolationNode
from accessguard.utils.validators import (
    InvalidURLError,
    is_request_allowed,
    validate_public_url,
)

logger = logging.getLogger(__name__)

settings = get_settings()

# WCAG 2.0/2.1 A and AA plus axe best practices
AXE_RUN_OPTIONS = {
    "runOnly": {
        "type": "tag",
        "values": ["wcag2a", "wcag2aa", "wcag21a", "wcag21aa", "best-practice"],
    },
    "resultTypes": ["violations", "passes", "incomplete"],
}

# Trim the result in the page; passes and incomplete only matter as counts
AXE_RUN_SCRIPT = """
async (options) => {
  if (!window.axe || !window.axe.run) {
    throw new Error("axe-core is not available in the page");
  }
  const results = await window.axe.run(document, options);
  return {
    violations: results.violations.map((v) => ({
      id: v.id,
      impact: v.impact,
      description: v.description,
      help: v.help,
      helpUrl: v.helpUrl,
      tags: v.tags,
      nodes: v.nodes.map((n) => ({
        html: n.html,
        target: n.target.map(String),
        failureSummary: n.failureSummary || "",
      })),
    })),
    passes: results.passes.length,
    incomplete: results.incomplete.length,
  };
}
"""

BROWSER_ARGS = [
    "--disable-dev-shm-usage",
    "--disable-gpu",
]

IMPACT_ORDER = {
    Impact.CRITICAL: 0,
    Impact.SERIOUS: 1,
    Impact.MODERATE: 2,
    Impact.MINOR: 3,
}

DEFAULT_FIX = (
    "Review the element and ensure it meets WCAG 2.1 AA guidelines. "
    "See the help URL for detailed guidance."
)

FIX_SUGGESTIONS = {
    "image-alt": (
        "Add a descriptive alt attribute to the image. "
        'Example: <img alt="Description of image content" ...>'
    ),
    "color-contrast": (
        "Increase the contrast ratio between the text color and background color. "
        "Use a contrast ratio of at least 4.5:1 for normal text and 3:1 for large text."
    ),
    "link-name": "Add descriptive text content to the link, or add an aria-label attribute.",
    "button-name": "Add text content to the button, or add an aria-label attribute.",
    "html-has-lang": 'Add a lang attribute to the <html> element. Example: <html lang="en">',
    "document-title": "Add a <title> element inside the <head> section of your HTML.",
    "meta-viewport": (
        "Ensure the meta viewport tag does not disable user scaling. "
        "Remove maximum-scale=1.0 or user-scalable=no."
    ),
    "label": (
        "Associate a <label> element with this form input using the for attribute, "
        "or wrap the input in a <label> element."
    ),
    "heading-order": (
        "Ensure headings follow a logical order (h1, then h2, then h3, etc.). "
        "Do not skip heading levels."
    ),
    "region": (
        "Wrap page content in landmark regions (<main>, <nav>, <header>, <footer>) "
        "so screen reader users can navigate efficiently."
    ),
    "landmark-one-main": "Add a <main> element to wrap the primary content of the page.",
    "page-has-heading-one": "Add an <h1> heading to the page to describe its main content.",
    "tabindex": (
        'Avoid using tabindex values greater than 0. Use tabindex="0" to add an element '
        'to the tab order, or tabindex="-1" to remove it.'
    ),
    "aria-roles": (
        "Use valid ARIA roles. Check the WAI-ARIA specification for a list of valid role values."
    ),
    "aria-valid-attr": "Ensure all ARIA attributes used are valid and spelled correctly.",
    "aria-valid-attr-value": (
        "Ensure all ARIA attribute values are valid for their respective attributes."
    ),
}

_axe_source: str | None = None


class ScanError(RuntimeError):
    """The page could not be loaded or analysed."""


def generate_fix_suggestion(rule_id: str) -> str:
    """Remediation hint for an axe rule."""
    return FIX_SUGGESTIONS.get(rule_id, DEFAULT_FIX)


def compute_score(passes: int, violations: int, incomplete: int) -> int:
    """Share of passing checks as a 0-100 percentage, rounded half up."""
    total = passes + violations + incomplete
    if total == 0:
        return 100
    return int(math.floor(passes / total * 100 + 0.5))


def _parse_impact(value: str | None) -> Impact:
    try:
        return Impact(value)
    except ValueError:
        return Impact.MINOR


def map_violations(raw_violations: list[dict[str, Any]]) -> list[Violation]:
    """Convert axe violations to our schema, most severe first."""
    violations = []
    for v in raw_violations:
        nodes = [
            ViolationNode(
                html=n.get("html", ""),
                target=[str(t) for t in n.get("target", [])],
                failure_summary=n.get("failureSummary") or "",
                fix_suggestion=generate_fix_suggestion(v["id"]),
            )
            for n in v.get("nodes", [])
        ]
        violations.append(
            Violation(
                id=v["id"],
                impact=_parse_impact(v.get("impact")),
                description=v.get("description", ""),
                help=v.get("help", ""),
                help_url=v.get("helpUrl", ""),
                tags=list(v.get("tags", [])),
                nodes=nodes,
            )
        )

    # sorted() is stable, so rule order within a level is kept
    return sorted(violations, key=lambda v: IMPACT_ORDER[v.impact])


def build_scan_result(url: str, raw: dict[str, Any], duration_ms: int) -> ScanResult:
    """Assemble a ScanResult from the trimmed axe output."""
    violations = map_violations(raw.get("violations", []))
    passes = int(raw.get("passes", 0))
    incomplete = int(raw.get("incomplete", 0))

    return ScanResult(
        url=url,
        timestamp=datetime.utcnow(),
        violations=violations,
        passes=passes,
        incomplete=incomplete,
        score=compute_score(passes, len(violations), incomplete),
        scan_duration=duration_ms,
    )


async def get_axe_source() -> str:
    """axe-core source, downloaded once and cached on disk and in memory."""
    global _axe_source

    if _axe_source:
        return _axe_source

    path = settings.AXE_SCRIPT_PATH
    if path.exists() and path.stat().st_size > 0:
        _axe_source = path.read_text(encoding="utf-8")
        return _axe_source

    logger.info("Downloading axe-core from %s", settings.AXE_SCRIPT_URL)
    try:
        async with httpx.AsyncClient(timeout=20.0, follow_redirects=True) as client:
            response = await client.get(settings.AXE_SCRIPT_URL)
            response.raise_for_status()
    except httpx.HTTPError as e:
        raise ScanError("Could not load the accessibility rule engine") from e

    _axe_source = response.text
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_axe_source, encoding="utf-8")
    except OSError as e:
        logger.warning("Could not cache axe-core at %s: %s", path, e)

    return _axe_source


async def launch_browser(playwright: Playwright):
    """Start headless Chromium."""
    args = list(BROWSER_ARGS)
    if settings.BROWSER_NO_SANDBOX:
        args += ["--no-sandbox", "--disable-setuid-sandbox"]

    return await playwright.chromium.launch(
        headless=True,
        args=args,
        executable_path=settings.BROWSER_EXECUTABLE_PATH or None,
    )


async def _guard_request(route: Route, request: BrowserRequest) -> None:
    """Abort browser requests that leave the public internet."""
    allowed = is_request_allowed(request.url)

    # Redirected top-level navigations get the full DNS re-check
    if allowed and request.is_navigation_request() and request.frame.parent_frame is None:
        try:
            await validate_public_url(request.url)
        except InvalidURLError:
            allowed = False

    if allowed:
        await route.continue_()
    else:
        logger.warning("Blocked browser request to %s", request.url)
        await route.abort("blockedbyclient")


async def scan_url(url: str) -> ScanResult:
    """Scan a single URL - main orchestrator.

    Raises InvalidURLError for rejected targets and ScanError when the page
    cannot be loaded or analysed.
    """
    start = time.monotonic()

    target = await validate_public_url(url)
    axe_source = await get_axe_source()

    logger.info("Scanning %s", target)

    async with async_playwright() as playwright:
        try:
            browser = await launch_browser(playwright)
        except PlaywrightError as e:
            raise ScanError("Could not start the headless browser") from e

        try:
            context = await browser.new_context(
                viewport={
                    "width": settings.SCAN_VIEWPORT_WIDTH,
                    "height": settings.SCAN_VIEWPORT_HEIGHT,
                },
                user_agent=settings.SCAN_USER_AGENT,
                bypass_csp=True,
            )
            page = await context.new_page()
            await page.route("**/*", _guard_request)

            await page.goto(
                target,
                wait_until="networkidle",
                timeout=settings.SCAN_TIMEOUT_MS,
            )

            await page.add_script_tag(content=axe_source)
            raw = await page.evaluate(AXE_RUN_SCRIPT, AXE_RUN_OPTIONS)
        except PlaywrightTimeoutError as e:
            raise ScanError(f"Timed out loading {target}") from e
        except PlaywrightError as e:
            raise ScanError(f"Failed to analyse {target}: {e}") from e
        finally:
            await browser.close()

    duration_ms = int((time.monotonic() - start) * 1000)
    result = build_scan_result(target, raw, duration_ms)

    logger.info(
        "Scanned %s: score %s, %s violations in %sms",
        target,
        result.score,
        len(result.violations),
        duration_ms,
    )
    return result
