import os
import unittest

from core.errors import LookupFailure, RecordNotFound
from record import (
    build_record,
    extract_publication_year,
    extract_record_year,
    extract_year,
    parse_publication_year,
    parse_record_payload,
)

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
DATA_DIR = os.path.join(REPO_ROOT, "tests", "data")


def _read(name: str) -> str:
    with open(os.path.join(DATA_DIR, name), "r", encoding="utf-8") as f:
        return f.read()


class TestRecordAccessors(unittest.TestCase):
    def setUp(self):
        self.record = build_record(
            datafields=[
                ("200", [("a", "Foo"), ("e", ""), ("e", "Bar"), ("f", "par Jane Doe")]),
                ("701", [("a", "Doe"), ("b", "Jane")]),
                ("701", [("a", "Roe"), ("b", "Rick")]),
                ("200", [("a", "Second title")]),
            ],
            controlfields=[("003", "https://example.org/page"), ("003", "ignored")],
            extra=[("CreationDate", "20230615")],
        )

    def test_subfield_text_absent_tag_or_code_is_empty(self):
        self.assertEqual(self.record.subfield_text("999", "a"), "")
        self.assertEqual(self.record.subfield_text("200", "z"), "")
        self.assertEqual(build_record().subfield_text("200", "a"), "")

    def test_subfield_text_reads_first_datafield_only(self):
        self.assertEqual(self.record.subfield_text("200", "a"), "Foo")
        self.assertEqual(self.record.subfield_text("701", "a"), "Doe")

    def test_subfield_text_is_case_sensitive(self):
        self.assertEqual(self.record.subfield_text("200", "A"), "")

    def test_subfield_text_multiple_keeps_document_order_and_skips_empty(self):
        text = self.record.subfield_text_multiple("200", ("e", "a"), " : ")
        self.assertEqual(text, "Foo : Bar")
        self.assertEqual(self.record.subfield_text_multiple("200", ("x",), " : "), "")
        self.assertEqual(self.record.subfield_text_multiple("999", ("a",)), "")

    def test_all_datafields_in_document_order(self):
        names = [df.subfield_text("a") for df in self.record.all_datafields("701")]
        self.assertEqual(names, ["Doe", "Roe"])
        self.assertEqual(self.record.all_datafields("999"), [])

    def test_controlfield_first_match(self):
        self.assertEqual(self.record.controlfield_text("003"), "https://example.org/page")
        self.assertEqual(self.record.controlfield_text("001"), "")
        self.assertEqual(self.record.cover_page_url, "https://example.org/page")

    def test_creation_dates(self):
        self.assertEqual(self.record.creation_dates(), ["20230615"])
        self.assertEqual(build_record().creation_dates(), [])


class TestYears(unittest.TestCase):
    def test_publication_year_free_text(self):
        self.assertEqual(parse_publication_year("impr. 2024"), "2024")
        self.assertEqual(parse_publication_year("c1998"), "1998")
        self.assertIsNone(parse_publication_year("unknown"))
        self.assertIsNone(parse_publication_year(""))

    def test_publication_year_ignores_longer_digit_runs(self):
        self.assertIsNone(parse_publication_year("ISBN 9782019"))
        self.assertEqual(parse_publication_year("12345 [2001]"), "2001")

    def test_cataloging_year(self):
        self.assertEqual(extract_year("20230615"), "2023")
        self.assertIsNone(extract_year("12"))
        self.assertIsNone(extract_year("abcd0615"))
        self.assertIsNone(extract_year("0999"))
        self.assertIsNone(extract_year(None))

    def test_publication_candidates_first_success_wins(self):
        record = build_record(
            datafields=[
                ("214", [("d", "s.d.")]),
                ("210", [("d", "DL 2011")]),
            ]
        )
        self.assertEqual(extract_publication_year(record), "2011")
        self.assertEqual(extract_publication_year(record, [("214", "d")]), None)

    def test_publication_candidates_earlier_year_wins(self):
        # Candidate priority decides, not document order.
        record = build_record(
            datafields=[
                ("210", [("d", "c1998")]),
                ("214", [("d", "impr. 2024")]),
            ]
        )
        self.assertEqual(extract_publication_year(record), "2024")
        self.assertEqual(extract_publication_year(record, [("210", "d"), ("214", "d")]), "1998")

    def test_record_year_falls_back_to_cataloging_date(self):
        record = build_record(
            datafields=[("210", [("d", "sans date")])],
            extra=[("CreationDate", "19990101")],
        )
        self.assertEqual(extract_record_year(record), "1999")
        self.assertIsNone(extract_record_year(build_record()))


class TestPayloadParser(unittest.TestCase):
    def test_parses_sru_record(self):
        record = parse_record_payload(_read("sru_book.xml"))
        self.assertEqual(record.subfield_text("010", "a"), "978-2-8116-6142-7")
        self.assertEqual(record.subfield_text("214", "c"), "Glénat")
        self.assertEqual(record.first_datafield("200").ind1, "1")
        self.assertEqual(
            record.cover_page_url, "https://catalogue.bnf.fr/ark:/12148/cb46838232d"
        )
        self.assertEqual(record.creation_dates(), ["20230615"])
        self.assertTrue(record.leader.startswith("cam0"))

    def test_accepts_bytes(self):
        record = parse_record_payload(_read("sru_book.xml").encode("utf-8"))
        self.assertEqual(record.subfield_text("200", "a"), "One piece")

    def test_zero_hits_is_record_not_found(self):
        with self.assertRaises(RecordNotFound):
            parse_record_payload(_read("sru_empty.xml"))

    def test_no_record_element_is_record_not_found(self):
        with self.assertRaises(RecordNotFound):
            parse_record_payload("<searchRetrieveResponse><records/></searchRetrieveResponse>")

    def test_empty_or_malformed_is_lookup_failure(self):
        for payload in (None, "", "   ", "<oops"):
            with self.subTest(payload=payload):
                with self.assertRaises(LookupFailure) as ctx:
                    parse_record_payload(payload)
                self.assertNotIsInstance(ctx.exception, RecordNotFound)

    def test_text_is_trimmed(self):
        record = parse_record_payload(
            '<record><datafield tag="200"><subfield code="a">  Padded  </subfield>'
            '</datafield><controlfield tag="003"> u </controlfield></record>'
        )
        self.assertEqual(record.subfield_text("200", "a"), "Padded")
        self.assertEqual(record.controlfield_text("003"), "u")


if __name__ == "__main__":
    unittest.main()
