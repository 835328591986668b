import json
import sys
from pathlib import Path

from typer.testing import CliRunner

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from vanity.cli import app as cli_app  # noqa: E402
from vanity.config import parse_config  # noqa: E402
from vanity.templates import (  # noqa: E402
    FAVICON_SVG,
    render_error_page,
    render_list_page,
    render_package_page,
)


def _config():
    return parse_config(
        {
            "global_domain": "https://go.example.org",
            "site_title": "Tools & Things",
            "packages": [
                {
                    "display_name": "kit",
                    "git_url": "https://github.com/example/kit.git",
                    "description": "Kit <core>",
                },
                {
                    "display_name": "kit/log",
                    "parent_display_name": "kit",
                    "git_url": "https://github.com/example/kit",
                    "is_sub_path": True,
                },
                {
                    "display_name": "loop-a",
                    "parent_display_name": "loop-b",
                    "git_url": "https://github.com/example/loop",
                    "is_sub_path": True,
                },
                {
                    "display_name": "loop-b",
                    "parent_display_name": "loop-a",
                    "git_url": "https://github.com/example/loop",
                    "is_sub_path": True,
                },
            ],
        }
    )


def test_list_page_escapes_and_nests_children() -> None:
    html = render_list_page(_config())
    assert html.startswith("<!DOCTYPE html>")
    assert "<title>Tools &amp; Things</title>" in html
    assert "Kit &lt;core&gt;" in html
    assert '<ul class="children"><li><a href="/kit/log">' in html
    # Packages whose parents only point at each other still get listed.
    assert "<strong>loop-a</strong>" in html
    assert "<strong>loop-b</strong>" in html


def test_package_page_meta_tags() -> None:
    config = _config()
    html = render_package_page(config, config.find_package("kit/log"))
    assert '<meta name="go-import" content="go.example.org/kit git https://github.com/example/kit" />' in html
    assert (
        "go.example.org/kit https://github.com/example/kit "
        "https://github.com/example/kit/tree/master{/dir} "
        "https://github.com/example/kit/blob/master{/dir}/{file}#L{line}"
    ) in html
    assert "No description." in html
    assert '<a href="/kit">kit</a>' in html


def test_error_page_and_favicon() -> None:
    html = render_error_page("internal error", 500)
    assert "<h1>500</h1>" in html
    assert "internal error" in html
    assert FAVICON_SVG.lstrip().startswith("<svg")


def test_cli_exits_on_invalid_config(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps({"global_domain": "not a domain", "packages": []}), encoding="utf-8"
    )
    result = CliRunner().invoke(cli_app, ["-c", str(config_path)])
    assert result.exit_code == 1

    result = CliRunner().invoke(cli_app, ["--config", str(tmp_path / "missing.json")])
    assert result.exit_code == 1


def test_cli_exits_cleanly_on_undecodable_config(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_bytes(b"\xff\xfe")
    result = CliRunner().invoke(cli_app, ["-c", str(config_path)])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)


def test_cli_log_levels_match_uvicorn(tmp_path: Path, monkeypatch) -> None:
    import uvicorn

    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"global_domain": "go.example.org"}), encoding="utf-8")
    seen = {}

    def fake_run(app, **kwargs):
        # uvicorn.Config resolves log_level the same way a real run does.
        uvicorn.Config(app, **kwargs)
        seen.update(kwargs)

    monkeypatch.setattr(uvicorn, "run", fake_run)

    for level in ("critical", "error", "warning", "INFO", "debug"):
        result = CliRunner().invoke(cli_app, ["-c", str(config_path), "--log-level", level])
        assert result.exit_code == 0, result.output
        assert seen["log_level"] == level.lower()
        assert seen["port"] == 8080

    for level in ("warn", "notset", "loud"):
        result = CliRunner().invoke(cli_app, ["-c", str(config_path), "--log-level", level])
        assert result.exit_code == 2
