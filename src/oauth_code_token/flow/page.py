"""HTML launch page served on the listener's ``/`` route."""

from __future__ import annotations

from html import escape

PAGE_TITLE = "OAuth 2.0 (Authorization Code flow with PKCE)"

_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{title}</title>
</head>
<body style="margin: 0; padding: 0; background-color: #333333;">
  <div style="text-align: center; padding-top: 120px;">
    <h2 style="color: white; font-family: sans-serif; font-weight: normal;">{title}</h2>
    <a id="signin" href="{url}"
       style="display: inline-block; padding: 8px 32px; font-size: 1em; font-family: sans-serif;
              background-color: #f0f0f0; color: #232323; text-decoration: none; border-radius: 3px;">
      Sign in
    </a>
  </div>
</body>
</html>
"""


def render_launch_page(authorization_url: str) -> str:
    """Render the page with a single "Sign in" link to *authorization_url*."""
    return _TEMPLATE.format(title=escape(PAGE_TITLE), url=escape(authorization_url, quote=True))
