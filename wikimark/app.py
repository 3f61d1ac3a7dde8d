"""
HTTP adapter for the renderer.
A small Flask application exposing markdown rendering and link-document parsing as JSON endpoints.
"""

from pathlib import Path
from typing import Any, Dict, Optional
import logging

from flask import Blueprint, Flask, current_app, jsonify, request

from wikimark.core.config import DEFAULT_CONFIG
from wikimark.core.pipeline import render_document
from wikimark.features.stats import FileSystemStatsProvider
from wikimark.layouts.links import links_to_dict, links_to_markdown, parse_links
from wikimark.version_info import __version__ as VERSION

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')


def _read_markdown():
    """
    Markdown arrives either as a raw request body or as {"markdown": "..."}.
    Returns (text, error_response).
    """
    max_size = current_app.config['WIKIMARK']['max_content_size']
    if request.content_length and request.content_length > max_size:
        return None, _too_large(request.content_length, max_size)

    if request.is_json:
        payload = request.get_json(silent=True)
        content = payload.get('markdown') if isinstance(payload, dict) else None
        if not isinstance(content, str):
            return None, (jsonify({'error': 'Missing markdown content'}), 400)
    else:
        content = request.get_data(as_text=True)

    content_size = len(content.encode('utf-8'))
    if content_size > max_size:
        return None, _too_large(content_size, max_size)
    return content, None


def _too_large(size: int, max_size: int):
    size_mb = size / (1024 * 1024)
    max_mb = max_size / (1024 * 1024)
    return jsonify({
        'error': 'Content Too Large',
        'message': f"The content is {size_mb:.2f} MB, which exceeds the maximum of {max_mb:.0f} MB.",
    }), 413


@api_bp.route('/version')
def version():
    return jsonify({'version': VERSION})


@api_bp.route('/render', methods=['POST'])
def render():
    content, error = _read_markdown()
    if error:
        return error

    doc_path = request.args.get('path', '').strip()
    settings = current_app.config['WIKIMARK']
    logger.info(f"Render request for '{doc_path}', size: {len(content)} chars")
    html_content = render_document(
        content,
        doc_path=doc_path,
        stats_provider=current_app.extensions.get('wikimark_stats'),
        enable_experimental=bool(settings['enable_experimental']),
    )
    return jsonify({'html': html_content})


@api_bp.route('/links/parse', methods=['POST'])
def parse_links_document():
    content, error = _read_markdown()
    if error:
        return error

    document = parse_links(content)
    result = links_to_dict(document)
    result['markdown'] = links_to_markdown(document, content)
    return jsonify(result)


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    settings = dict(DEFAULT_CONFIG)
    if config:
        settings.update(config)

    app = Flask(__name__)
    app.config['WIKIMARK'] = settings
    app.config['MAX_CONTENT_LENGTH'] = settings['max_content_size']

    documents_root = Path(settings['documents_root'])
    if documents_root.is_dir():
        app.extensions['wikimark_stats'] = FileSystemStatsProvider(documents_root)
        logger.info(f"Stats shortcodes read documents from {documents_root}")
    else:
        logger.warning(f"Documents root {documents_root} not found; stats shortcodes will show placeholders")

    app.register_blueprint(api_bp)

    @app.errorhandler(413)
    def request_too_large(error):
        return _too_large(request.content_length or 0, settings['max_content_size'])

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"500 Error: {error}", exc_info=True)
        return jsonify({'error': 'Internal Server Error', 'message': str(error)}), 500

    return app
