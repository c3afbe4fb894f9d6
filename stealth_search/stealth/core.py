"""
Core stealth init scripts aligned with the session identity.
"""

from __future__ import annotations

import json

from playwright.async_api import BrowserContext

from stealth_search.core.models import Identity
from stealth_search.stealth.config import StealthConfig


WEBDRIVER_SCRIPT = """
(() => {
  try {
    const proto = Object.getPrototypeOf(navigator);
    if (proto && Object.prototype.hasOwnProperty.call(proto, 'webdriver')) {
      delete proto.webdriver;
    }
    Object.defineProperty(navigator, 'webdriver', {
      get: () => undefined,
      configurable: true,
    });
    if (!window.chrome) {
      window.chrome = { runtime: {} };
    } else if (!window.chrome.runtime) {
      window.chrome.runtime = {};
    }
  } catch (e) {}
})();
"""


NAVIGATOR_SCRIPT_TEMPLATE = """
((fp) => {
  try {
    Object.defineProperty(navigator, 'languages', {
      get: () => fp.languages,
      configurable: true,
    });
    Object.defineProperty(navigator, 'platform', {
      get: () => fp.platform,
      configurable: true,
    });
    Object.defineProperty(screen, 'width', { get: () => fp.screen.width });
    Object.defineProperty(screen, 'height', { get: () => fp.screen.height });
    Object.defineProperty(screen, 'colorDepth', { get: () => fp.screen.colorDepth });

    if (fp.chromium) {
      const plugins = [
        { name: 'Chrome PDF Plugin', filename: 'internal-pdf-viewer' },
        { name: 'Chrome PDF Viewer', filename: 'mhjfbmdgcfjbbpaeojofohoefgiehjai' },
        { name: 'Native Client', filename: 'internal-nacl-plugin' },
      ];
      const pluginArray = {
        length: plugins.length,
        item: (index) => plugins[index] || null,
        namedItem: (name) => plugins.find(p => p.name === name) || null,
      };
      plugins.forEach((p, i) => {
        Object.defineProperty(pluginArray, i, { value: p, enumerable: true });
      });
      Object.defineProperty(navigator, 'plugins', {
        get: () => pluginArray,
        configurable: true,
      });
    }
  } catch (e) {}
})(%s);
"""


PERMISSIONS_SCRIPT = """
(() => {
  try {
    const permissions = window.navigator.permissions;
    if (!permissions || !permissions.query) {
      return;
    }
    const originalQuery = permissions.query.bind(permissions);
    permissions.query = (parameters) => {
      if (parameters && parameters.name === 'notifications') {
        const state = (typeof Notification !== 'undefined' &&
          Notification.permission) || 'default';
        return Promise.resolve({ state });
      }
      return originalQuery(parameters);
    };
  } catch (e) {}
})();
"""




def navigator_script(identity: Identity) -> str:
    """Render the navigator override script for an identity."""
    payload = {
        "languages": identity.languages,
        "platform": identity.platform,
        "chromium": identity.browser_family == "chromium",
        "screen": {
            "width": identity.screen_profile.width,
            "height": identity.screen_profile.height,
            "colorDepth": identity.screen_profile.color_depth,
        },
    }
    return NAVIGATOR_SCRIPT_TEMPLATE % json.dumps(payload)




def stealth_scripts(identity: Identity, config: StealthConfig) -> list[str]:
    """
    Init scripts for a session, in injection order.

    Args:
        identity: Session identity the navigator values must match
        config: Stealth configuration

    Returns:
        JavaScript sources (empty when stealth is disabled)
    """
    if not config.enabled:
        return []

    scripts: list[str] = []

    if config.spoof_webdriver:
        scripts.append(WEBDRIVER_SCRIPT)

    if config.spoof_navigator:
        scripts.append(navigator_script(identity))

    scripts.append(PERMISSIONS_SCRIPT)
    return scripts




async def apply_core_stealth(
    context: BrowserContext,
    identity: Identity,
    config: StealthConfig,
) -> None:
    """
    Register stealth init scripts on a browser context.

    Scripts run before any page script in every page of the context, so
    navigator.webdriver, languages, platform and screen metrics agree with
    the User-Agent and headers the context was created with.

    Args:
        context: Playwright browser context
        identity: Session identity
        config: Stealth configuration
    """
    for script in stealth_scripts(identity, config):
        await context.add_init_script(script)
