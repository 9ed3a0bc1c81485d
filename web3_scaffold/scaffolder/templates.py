"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``web3_scaffold/scaffolder/templates/`` directory and renders them with the
project context.  Rendering is pure: callers receive strings (or a mapping of
relative output path to string) and decide how to write them.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

# ``__contract_name__.sol.j2`` -> ``BushidoNFT.sol``
_PATH_VAR_RE = re.compile(r"__([a-z_]+?)__")


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for project scaffolding.

    Undefined variables raise instead of rendering as empty strings, so a
    template typo surfaces as a failed step rather than a broken file.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        # `abstractTestnet` -> `ABSTRACT_TESTNET` for env var names
        self.env.filters["snake_case"] = _snake_case_filter

    # -- Single template rendering -----------------------------------------

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"contracts/hardhat.config.ts.j2"``).
            context: Dictionary of variables available inside the template.

        Returns:
            The rendered template content as a string.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)

    # -- Tree rendering ----------------------------------------------------

    def render_tree(self, template_prefix: str, context: dict[str, Any]) -> dict[str, str]:
        """Render every ``*.j2`` file under *template_prefix*.

        The directory structure is preserved: a template at
        ``contracts/scripts/deploy.ts.j2`` rendered with
        ``template_prefix="contracts"`` yields the key ``scripts/deploy.ts``.
        Path segments of the form ``__name__`` are replaced by
        ``context["name"]``.

        Args:
            template_prefix: Subdirectory inside the template root to scan.
            context: Template context variables.

        Returns:
            Mapping of relative output path (POSIX separators) to content,
            in sorted template order.
        """
        prefix_path = self.template_dir / template_prefix
        if not prefix_path.is_dir():
            return {}

        rendered: dict[str, str] = {}
        for template_file in sorted(prefix_path.rglob("*.j2")):
            rel = template_file.relative_to(prefix_path).as_posix()
            output_name = expand_path_vars(rel[: -len(".j2")], context)
            rendered[output_name] = self.render(f"{template_prefix}/{rel}", context)

        return rendered


# ---------------------------------------------------------------------------
# Path placeholders
# ---------------------------------------------------------------------------


def expand_path_vars(path: str, context: dict[str, Any]) -> str:
    """Substitute ``__var__`` placeholders in *path* from *context*.

    Raises:
        KeyError: If a placeholder has no matching context entry.
    """
    def _sub(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in context:
            raise KeyError(f"template path variable '{key}' is not in the context")
        return str(context[key])

    return _PATH_VAR_RE.sub(_sub, path)


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _snake_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()
