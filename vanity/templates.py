from __future__ import annotations

from html import escape
from typing import List, Set
from urllib.parse import quote

from .config import GlobalConfig, Package

FAVICON_SVG = """<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 64 64">
  <rect width="64" height="64" rx="12" fill="#3367d6"/>
  <path d="M18 20h28M18 32h28M18 44h18" stroke="#fff" stroke-width="6" stroke-linecap="round"/>
</svg>
"""

_BASE_STYLE = """
    :root {
      color-scheme: light dark;
      font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
      --border: #c7cad6;
      --accent: #3367d6;
      --muted: #657185;
      --panel: #ffffff;
    }
    body {
      margin: 0;
      padding: 1.5rem;
      background: #f5f7fb;
      color: #0f172a;
      line-height: 1.55;
    }
    main {
      max-width: 860px;
      margin: 0 auto;
    }
    h1 {
      margin-top: 0;
      font-size: 1.5rem;
    }
    a {
      color: var(--accent);
    }
    .panel {
      background: var(--panel);
      border: 1px solid var(--border);
      border-radius: 8px;
      padding: 1rem 1.25rem;
      margin-bottom: 1rem;
    }
    .muted {
      color: var(--muted);
    }
    ul.packages {
      list-style: none;
      padding: 0;
      margin: 0;
    }
    ul.packages li {
      padding: 0.6rem 0;
      border-bottom: 1px solid var(--border);
    }
    ul.packages li:last-child {
      border-bottom: none;
    }
    ul.children {
      list-style: none;
      padding-left: 1.2rem;
      margin: 0.4rem 0 0;
    }
    code, pre {
      font-family: ui-monospace, SFMono-Regular, Menlo, monospace;
      font-size: 0.9rem;
    }
    pre {
      background: #eef2ff;
      padding: 0.6rem 0.8rem;
      border-radius: 6px;
      overflow-x: auto;
    }
    dl {
      display: grid;
      grid-template-columns: max-content 1fr;
      gap: 0.35rem 1rem;
      margin: 0;
    }
    dt {
      font-weight: 600;
    }
    dd {
      margin: 0;
    }
"""


def _page(title: str, head_extra: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  {head_extra}
  <title>{escape(title)}</title>
  <link rel="icon" type="image/svg+xml" href="/favicon.svg" />
  <style>{_BASE_STYLE}  </style>
</head>
<body>
  <main>
{body}
  </main>
</body>
</html>"""


def _package_href(name: str) -> str:
    return escape("/" + quote(name, safe="/"), quote=True)


def _render_package_item(config: GlobalConfig, package: Package, rendered: Set[str]) -> str:
    rendered.add(package.display_name)
    name = escape(package.display_name)
    description = (
        f"<div class=\"muted\">{escape(package.description)}</div>" if package.description else ""
    )
    nested = [
        _render_package_item(config, child, rendered)
        for child in config.children_of(package.display_name)
        if child.display_name not in rendered
    ]
    children = "<ul class=\"children\">" + "".join(nested) + "</ul>" if nested else ""
    return (
        f"<li><a href=\"{_package_href(package.display_name)}\"><code>"
        f"{escape(config.import_prefix(package.display_name))}</code></a>"
        f" <strong>{name}</strong>{description}{children}</li>"
    )


def render_list_page(config: GlobalConfig) -> str:
    title = config.site_title or config.domain_host
    listed = {package.display_name for package in config.packages}
    rendered: Set[str] = set()
    items: List[str] = []
    for package in config.packages:
        # Children whose parent is listed are rendered under that parent.
        if package.has_parent and package.parent_display_name in listed:
            continue
        if package.display_name not in rendered:
            items.append(_render_package_item(config, package, rendered))
    # Parent chains that loop back on themselves never reach a root.
    for package in config.packages:
        if package.display_name not in rendered:
            items.append(_render_package_item(config, package, rendered))
    package_list = (
        "<ul class=\"packages\">" + "\n".join(items) + "</ul>"
        if items
        else "<p class=\"muted\">No packages configured yet.</p>"
    )
    body = f"""    <header>
      <h1>{escape(title)}</h1>
      <p class="muted">Packages served from <code>{escape(config.domain_host)}</code></p>
    </header>
    <section class="panel">
      {package_list}
    </section>"""
    return _page(title, "", body)


def render_package_page(config: GlobalConfig, package: Package) -> str:
    import_path = config.import_prefix(package.display_name)
    import_root = config.import_prefix(package.import_root)
    home = package.source_home
    ref = package.git_ref
    go_import = f"{import_root} git {package.repo_url}"
    go_source = (
        f"{import_root} {home} {home}/tree/{ref}{{/dir}} "
        f"{home}/blob/{ref}{{/dir}}/{{file}}#L{{line}}"
    )
    head_extra = (
        f"<meta name=\"go-import\" content=\"{escape(go_import)}\" />\n"
        f"  <meta name=\"go-source\" content=\"{escape(go_source)}\" />"
    )
    parent_html = ""
    if package.has_parent:
        parent_html = (
            f"<dt>Parent</dt><dd><a href=\"{_package_href(package.parent_display_name)}\">"
            f"{escape(package.parent_display_name)}</a></dd>"
        )
    description = escape(package.description) if package.description else "No description."
    body = f"""    <header>
      <nav><a href="/">&larr; {escape(config.site_title or config.domain_host)}</a></nav>
      <h1>{escape(package.display_name)}</h1>
      <p>{description}</p>
    </header>
    <section class="panel">
      <pre>go get {escape(import_path)}</pre>
      <dl>
        <dt>Import path</dt><dd><code>{escape(import_path)}</code></dd>
        <dt>Source</dt><dd><a href="{escape(package.git_url, quote=True)}">{escape(package.git_url)}</a></dd>
        <dt>Ref</dt><dd><code>{escape(ref)}</code></dd>
        {parent_html}
      </dl>
    </section>"""
    return _page(package.display_name, head_extra, body)


def render_error_page(reason: str, status: int) -> str:
    body = f"""    <section class="panel">
      <h1>{status}</h1>
      <p>{escape(reason)}</p>
      <p><a href="/">Back to the package list</a></p>
    </section>"""
    return _page(f"Error {status}", "", body)
