"""Tests for the Flex document parser."""

import pytest

from src.flex.exceptions import DocumentParseError
from src.flex.parser import parse_flex_document


class TestParseFlexDocument:
    """Tests for turning export text into attribute records."""

    def test_extracts_trade_confirm_attributes(self, render_flex, put_row) -> None:
        """Each TradeConfirm element should become one attribute dict."""
        text = render_flex(put_row(), put_row(tradeID="1002"))

        records = parse_flex_document(text, "a.xml")

        assert len(records) == 2
        assert records[0]["tradeID"] == "1001"
        assert records[0]["symbol"] == "AAPL  250221P00190000"
        assert records[1]["tradeID"] == "1002"

    def test_activity_statement_trades_are_accepted(self, render_flex, put_row) -> None:
        """Trades/Trade rows should be read like TradeConfirms."""
        text = render_flex(put_row(), container="Trades", row="Trade")

        records = parse_flex_document(text)

        assert [r["tradeID"] for r in records] == ["1001"]

    def test_empty_trade_list(self, render_flex) -> None:
        """A statement without trades should yield no records."""
        assert parse_flex_document(render_flex()) == []

    def test_statement_without_trade_section(self) -> None:
        text = (
            "<FlexQueryResponse><FlexStatements><FlexStatement accountId='U1'/>"
            "</FlexStatements></FlexQueryResponse>"
        )
        assert parse_flex_document(text) == []

    def test_unexpected_root_still_scanned(self) -> None:
        text = "<Export><TradeConfirms><TradeConfirm tradeID='9'/></TradeConfirms></Export>"
        assert parse_flex_document(text) == [{"tradeID": "9"}]

    def test_malformed_xml_raises(self) -> None:
        """Broken markup should raise DocumentParseError naming the document."""
        with pytest.raises(DocumentParseError, match="broken.xml"):
            parse_flex_document("<FlexQueryResponse><TradeConfirms>", "broken.xml")

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty_document_raises(self, text: str) -> None:
        with pytest.raises(DocumentParseError, match="empty"):
            parse_flex_document(text, "empty.xml")
