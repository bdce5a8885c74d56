"""
stealth.py

Init script that hides the usual headless-automation fingerprints.
Has to be registered before the page starts loading, since Google's
detection probes run during the first script execution.
"""

from typing import Any

STEALTH_INIT_SCRIPT = """
    // Override webdriver property
    Object.defineProperty(navigator, 'webdriver', {
        get: () => false,
    });

    // Real Chrome ships these three plugins
    Object.defineProperty(navigator, 'plugins', {
        get: () => [
            { name: 'Chrome PDF Plugin', filename: 'internal-pdf-viewer' },
            { name: 'Chrome PDF Viewer', filename: 'mhjfbmdgcfjbbpaeojofohoefgiehjai' },
            { name: 'Native Client', filename: 'internal-nacl-plugin' },
        ],
    });

    // Override languages
    Object.defineProperty(navigator, 'languages', {
        get: () => ['en-US', 'en'],
    });

    // Add chrome object
    window.chrome = { runtime: {} };
"""


async def apply_stealth(page: Any) -> None:
    """Register the stealth script on a page. Call once per navigation, before goto."""
    await page.add_init_script(script=STEALTH_INIT_SCRIPT)
