"""Template engine for solution scaffolding."""

from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, StrictUndefined


class TemplateEngine:
    """Handles template rendering for scaffolding."""

    def __init__(self, template_dir: Path):
        self.template_dir = template_dir
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        """Render `<template_name>.j2` with the given context.

        Raises:
            jinja2.TemplateError: Missing template or undefined variable
        """
        return self.env.get_template(f"{template_name}.j2").render(**context)

    def render_to(self, template_name: str, context: Dict[str, Any], dest: Path) -> Path:
        """Render a template and write it to dest, creating parent dirs."""
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(self.render_template(template_name, context))
        return dest
