#!/usr/bin/env python
"""
Command-line interface for wikimark
"""

import argparse
import logging
import sys
from pathlib import Path

from wikimark.core.config import load_config
from wikimark.core.logging_config import setup_logging
from wikimark.version_info import __version__, __build_timestamp__, __build_type__

logger = logging.getLogger(__name__)


def print_version():
    """Print version information."""
    print(f"wikimark v{__version__}")
    print(f"Build: {__build_timestamp__}")
    print(f"Build Type: {__build_type__}")


def render_file(args, config) -> int:
    """Render one markdown file to HTML."""
    from wikimark.core.pipeline import render_document
    from wikimark.features.stats import FileSystemStatsProvider

    source = Path(args.file)
    try:
        content = source.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading {source}: {e}", file=sys.stderr)
        return 1

    documents_root = Path(config['documents_root'])
    provider = FileSystemStatsProvider(documents_root) if documents_root.is_dir() else None
    html_content = render_document(
        content,
        doc_path=args.path,
        stats_provider=provider,
        enable_experimental=bool(config['enable_experimental']),
    )

    if args.output:
        Path(args.output).write_text(html_content, encoding='utf-8')
        logger.info(f"Wrote {len(html_content)} chars to {args.output}")
    else:
        sys.stdout.write(html_content)
        if not html_content.endswith('\n'):
            sys.stdout.write('\n')
    return 0


def start_server(args, config) -> int:
    """Start the Flask server."""
    from wikimark.app import create_app

    host = args.host or config['host']
    port = args.port or config['port']
    debug = args.debug or bool(config['debug'])

    log_file = setup_logging(Path(config['log_dir']), debug_mode=debug)
    app = create_app(config)

    print(f"Starting wikimark v{__version__}")
    print(f"Server: http://{host}:{port}")
    print(f"Log file: {log_file}")
    print("Press Ctrl+C to stop")
    print()

    app.run(host=host, port=port, debug=debug)
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description=f'wikimark v{__version__}',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  wikimark --version                         Show version information
  wikimark render page.md                    Print the rendered HTML
  wikimark render page.md --path guides/a -o out.html
  wikimark serve --port 8080                 Start the API server on port 8080
        """
    )

    parser.add_argument(
        '--version', '-v',
        action='store_true',
        help='Show version information'
    )
    parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help='Path to a JSON config file (default: $WIKIMARK_CONFIG or ./config.json)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    render_parser = subparsers.add_parser('render', help='Render a markdown file to HTML')
    render_parser.add_argument('file', help='Markdown file to render')
    render_parser.add_argument(
        '--path',
        type=str,
        default='',
        help='Document path used to resolve local assets (default: the home page)'
    )
    render_parser.add_argument('--output', '-o', type=str, default=None, help='Write HTML here instead of stdout')

    serve_parser = subparsers.add_parser('serve', help='Start the render API server')
    serve_parser.add_argument('--host', type=str, default=None, help='Host to bind to (default: from config, 0.0.0.0)')
    serve_parser.add_argument('--port', '-p', type=int, default=None, help='Port to bind to (default: from config, 8000)')
    serve_parser.add_argument('--debug', '-d', action='store_true', help='Run in debug mode')

    args = parser.parse_args(argv)

    if args.version:
        print_version()
        return 0

    config = load_config(args.config)

    if args.command == 'render':
        return render_file(args, config)

    if args.command == 'serve':
        try:
            return start_server(args, config)
        except KeyboardInterrupt:
            print("\nServer stopped.")
            return 0
        except Exception as e:
            logger.error(f"Error starting server: {e}", exc_info=True)
            print(f"Error starting server: {e}", file=sys.stderr)
            return 1

    parser.print_help()
    return 0


if __name__ == '__main__':
    sys.exit(main())
