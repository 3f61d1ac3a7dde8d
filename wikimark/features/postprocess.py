import logging

from bs4 import BeautifulSoup

from wikimark.core.context import RenderContext

logger = logging.getLogger(__name__)

EXTERNAL_SCHEMES = ('http://', 'https://')


def annotate_external_links(html_content: str, ctx: RenderContext) -> str:
    """External links open in a new tab."""
    if '<a' not in html_content:
        return html_content

    soup = BeautifulSoup(html_content, 'html.parser')
    count = 0
    for a_tag in soup.find_all('a'):
        href = a_tag.get('href', '')
        if href.startswith(EXTERNAL_SCHEMES):
            a_tag['target'] = '_blank'
            a_tag['rel'] = 'noopener noreferrer'
            count += 1

    if not count:
        return html_content
    logger.debug(f"Marked {count} external links")
    return str(soup)
