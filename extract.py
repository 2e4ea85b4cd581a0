import logging
import re
from urllib.parse import urljoin

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)


def normalize_key(label):
    """Label -> machine-friendly key, e.g. "Reference Number:" -> "reference_number"."""
    return re.sub(r'[^a-z0-9]+', '_', (label or '').strip().lower()).strip('_')


def extract_count(text):
    """First integer found in text, or None."""
    if not text:
        return None
    match = re.search(r'(\d+)', text)
    return int(match.group(1)) if match else None


def resolve_url(base_url, href):
    if not href:
        return None
    return urljoin(base_url, href)


def parse_date_value(text):
    """Parse a UK-style date string into YYYY-MM-DD, or None if it isn't a date."""
    if not text or not re.search(r'\d', text):
        return None
    try:
        return date_parser.parse(text, dayfirst=True).date().isoformat()
    except (ValueError, OverflowError):
        logger.debug(f"Not a date: {text!r}")
        return None


def read_key_value_table(reader, selector):
    """Generic "key -> value" table scraper.

    Every row with at least two cells becomes one entry: the first cell is the
    label (trailing colon dropped, then normalized) and the second the value.
    Later rows overwrite earlier ones when labels normalize to the same key.
    """
    data = {}
    for row in reader.query_all(f"{selector} tr"):
        cells = reader.query_all("th, td", row)
        if len(cells) < 2:
            continue
        label = re.sub(r':$', '', reader.text(cells[0]))
        if not label:
            continue
        data[normalize_key(label)] = reader.text(cells[1])
    return data


def read_links(reader, selector, scope=None, resolve=True):
    links = []
    for anchor in reader.query_all(selector, scope):
        href = reader.attribute(anchor, 'href')
        links.append({
            'text': reader.text(anchor),
            'href': resolve_url(reader.url, href) if resolve else href,
        })
    return links


def read_hidden_inputs(reader, form):
    params = {}
    for field in reader.query_all('input[type="hidden"]', form):
        name = reader.attribute(field, 'name')
        if name:
            params[name] = reader.attribute(field, 'value') or ''
    return params


def read_select_options(reader, selector):
    """Options of a <select> as {value, label, selected}.

    An option without a value attribute submits its text, and with nothing
    marked selected the browser shows the first option.
    """
    options = []
    for option in reader.query_all(f"{selector} option"):
        label = reader.text(option)
        value = reader.attribute(option, 'value')
        options.append({
            'value': label if value is None else value,
            'label': label,
            'selected': reader.attribute(option, 'selected') is not None,
        })
    if options and not any(opt['selected'] for opt in options):
        options[0]['selected'] = True
    return options


def read_positional_rows(reader, selector, fields, skip=1):
    """Map table rows onto fixed field names by column position.

    The first ``skip`` rows are headers. Rows without any <td> are ignored and
    missing trailing columns become empty strings.
    """
    records = []
    for row in reader.query_all(f"{selector} tr")[skip:]:
        cols = reader.query_all("td", row)
        if not cols:
            continue
        texts = [reader.text(col) for col in cols]
        records.append({
            field: texts[index] if index < len(texts) else ''
            for index, field in enumerate(fields)
        })
    return records


def read_related_sections(reader, container='.tabcontainer'):
    """Split a container into sections headed by <h2>.

    Each sibling after a heading, up to the next heading, contributes its links
    or, when it has none, its text. Structural surprises give an empty list.
    """
    try:
        sections = []
        for heading in reader.query_all(f"{container} h2"):
            section = {'title': reader.text(heading), 'items': []}
            node = reader.next_sibling(heading)
            while node is not None and reader.tag_name(node) != 'h2':
                links = read_links(reader, 'a', node)
                if links:
                    section['items'].extend(links)
                else:
                    text = reader.text(node)
                    if text:
                        section['items'].append({'text': text, 'href': None})
                node = reader.next_sibling(node)
            sections.append(section)
        return sections
    except Exception as exc:
        logger.debug(f"read_related_sections failed for '{container}': {exc}")
        return []
