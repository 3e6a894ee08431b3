"""
Flex export document parser.

Turns the text of one broker export document into a flat list of
attribute dictionaries, one per trade confirmation. No validation or
business logic happens here; see normalizer.py for that.

Expected layout:
    <FlexQueryResponse>
      <FlexStatements>
        <FlexStatement>
          <TradeConfirms>
            <TradeConfirm tradeID="..." symbol="..." ... />
"""

import logging
import xml.etree.ElementTree as ET

from .exceptions import DocumentParseError

logger = logging.getLogger(__name__)

# Element names that carry one trade each, keyed by their container
TRADE_CONTAINERS: dict[str, str] = {
    "TradeConfirms": "TradeConfirm",
    "Trades": "Trade",  # Activity statements
}


def parse_flex_document(text: str, document: str = "<string>") -> list[dict[str, str]]:
    """
    Parse one export document into trade attribute records.

    An empty statement, or a statement without any trade section, yields an
    empty list.

    Args:
        text: Raw document content
        document: Document name used in error messages

    Returns:
        List of attribute dictionaries in document order

    Raises:
        DocumentParseError: If the content is empty or not well-formed XML
    """
    if not text or not text.strip():
        raise DocumentParseError(document, "document is empty")

    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise DocumentParseError(document, f"malformed XML: {e}") from e

    if root.tag != "FlexQueryResponse":
        logger.warning(
            f"{document}: unexpected root element <{root.tag}>, scanning for trades anyway"
        )

    records: list[dict[str, str]] = []
    for container, row in TRADE_CONTAINERS.items():
        for section in root.iter(container):
            for element in section.findall(row):
                records.append(dict(element.attrib))

    logger.debug(f"{document}: found {len(records)} trade records")
    return records
