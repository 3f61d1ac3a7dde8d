from pathlib import Path
import logging

from jinja2 import Environment, FileSystemLoader, select_autoescape

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / 'templates'

# Fragment templates (kanban boards, links view) are rendered outside any
# Flask request, so they get their own environment.
_environment = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(['html']),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_fragment(template_name: str, **context) -> str:
    logger.debug(f"Rendering template fragment {template_name}")
    return _environment.get_template(template_name).render(**context)


def register_filter(name: str, func):
    _environment.filters[name] = func
