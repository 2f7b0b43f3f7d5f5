"""
Tests for the in-process engine harness
"""
import pytest

from kbtestkit.assertions import assert_query, assert_update
from kbtestkit.builders import add, adoc, commit, del_id, del_query, doc, optimize, req
from kbtestkit.engine.harness import TestHarness
from kbtestkit.errors import HarnessClosedError, HarnessSetupError, InvalidXMLError, InvalidXPathError


def index_docs(harness, *docs):
    """Add each field list as a document, then commit"""
    for fields in docs:
        assert_update(harness, adoc(harness, *fields))
    assert_update(harness, commit(harness))


@pytest.fixture
def books(harness):
    """Harness with four committed documents"""
    index_docs(
        harness,
        ("id", "1", "title", "Machine learning basics", "cat", "ml", "cat", "intro", "price", "30"),
        ("id", "2", "title", "Deep neural networks", "cat", "ml", "price", "45"),
        ("id", "3", "title", "Portfolio construction", "cat", "finance", "price", "5"),
        ("id", "4", "title", "Cooking for engineers", "price", "12"),
    )
    return harness


class TestHarnessSetup:
    """Tests for binding a harness"""

    def test_unknown_schema(self, tmp_path):
        """Test unknown schema name is a setup error"""
        with pytest.raises(HarnessSetupError, match="Unknown schema"):
            TestHarness(tmp_path, "solrconfig.xml", "missing.xml")

    def test_unknown_config(self, tmp_path):
        """Test unknown config name is a setup error"""
        with pytest.raises(HarnessSetupError, match="Unknown config"):
            TestHarness(tmp_path, "missing.xml", "schema.xml")

    def test_missing_data_dir(self, tmp_path):
        """Test the data dir must exist"""
        with pytest.raises(HarnessSetupError, match="does not exist"):
            TestHarness(tmp_path / "nope")

    def test_index_file_in_data_dir(self, harness):
        """Test the index lives inside the bound data dir"""
        assert (harness.data_dir / "index.db").exists()

    def test_close_is_idempotent(self, tmp_path):
        """Test close can be called repeatedly"""
        harness = TestHarness(tmp_path)
        harness.close()
        harness.close()
        assert harness.closed

    def test_closed_harness_rejects_work(self, tmp_path):
        """Test operations after close raise"""
        harness = TestHarness(tmp_path)
        harness.close()
        with pytest.raises(HarnessClosedError):
            harness.validate_update("<commit/>")


class TestUpdates:
    """Tests for update message handling"""

    def test_add_invisible_until_commit(self, harness, request_factory):
        """Test pending adds are not searchable before commit"""
        assert_update(harness, adoc(harness, "id", "1", "title", "hello"))
        assert_query(harness, req(request_factory, "*:*"), "//result[@numFound='0']")
        assert_update(harness, commit(harness))
        assert_query(harness, req(request_factory, "*:*"), "//result[@numFound='1']")

    def test_same_key_replaces(self, harness, request_factory):
        """Test adding an existing unique key replaces the document"""
        index_docs(harness, ("id", "1", "title", "old"), ("id", "1", "title", "new"))
        assert_query(harness, req(request_factory, "id:1"),
                     "//result[@numFound='1']",
                     "//str[@name='title'][.='new']")

    def test_overwrite_false_keeps_duplicates(self, harness, request_factory):
        """Test overwrite=false allows duplicate keys"""
        assert_update(harness, adoc(harness, "id", "1"))
        assert_update(harness, add(doc(harness, "id", "1"), "overwrite", "false"))
        assert_update(harness, commit(harness))
        assert_query(harness, req(request_factory, "id:1"), "//result[@numFound='2']")

    def test_missing_unique_key_diagnostic(self, harness):
        """Test documents without the unique key are rejected"""
        result = harness.validate_update(adoc(harness, "title", "no id"))
        assert result == "Document is missing mandatory uniqueKey field: id"

    def test_multiple_unique_keys_diagnostic(self, harness):
        """Test documents with two unique key values are rejected"""
        result = harness.validate_update(adoc(harness, "id", "1", "id", "2"))
        assert "multiple values for uniqueKey" in result

    def test_unknown_root_diagnostic(self, harness):
        """Test unknown message types are rejected, not raised"""
        assert harness.validate_update("<upsert/>") == "unexpected XML tag /upsert"

    def test_field_without_name_diagnostic(self, harness):
        """Test fields must be named"""
        result = harness.validate_update("<add><doc><field>x</field></doc></add>")
        assert "name" in result

    def test_malformed_xml_raises(self, harness):
        """Test malformed messages raise instead of returning a diagnostic"""
        with pytest.raises(InvalidXMLError):
            harness.validate_update("<add><doc></add>")

    def test_delete_by_id(self, books, request_factory):
        """Test delete by unique key"""
        assert_update(books, del_id(books, "2"))
        assert_update(books, commit(books))
        assert_query(books, req(request_factory, "*:*"),
                     "//result[@numFound='3']",
                     "not(//str[@name='id'][.='2'])")

    def test_delete_by_id_matches_key_verbatim(self, harness, request_factory):
        """Test keys with surrounding whitespace can be deleted by the same key"""
        index_docs(harness, ("id", " x "), ("id", "x"))
        assert_update(harness, del_id(harness, " x "))
        assert_update(harness, commit(harness))
        assert_query(harness, req(request_factory, "*:*"),
                     "//result[@numFound='1']",
                     "//str[@name='id'][.='x']")

    def test_delete_by_query(self, books, request_factory):
        """Test delete by query removes every match"""
        assert_update(books, del_query(books, "cat:ml"))
        assert_update(books, commit(books))
        assert_query(books, req(request_factory, "*:*"), "//result[@numFound='2']")

    def test_delete_by_query_sees_pending_docs(self, harness, request_factory):
        """Test delete by query also removes uncommitted documents"""
        assert_update(harness, adoc(harness, "id", "9", "cat", "tmp"))
        assert_update(harness, del_query(harness, "cat:tmp"))
        assert_update(harness, commit(harness))
        assert_query(harness, req(request_factory, "*:*"), "//result[@numFound='0']")

    def test_invalid_delete_query_diagnostic(self, harness):
        """Test unparsable delete queries are rejected"""
        result = harness.validate_update(del_query(harness, 'title:"unclosed'))
        assert result.startswith("Invalid delete query")

    def test_rollback_discards_pending(self, books, request_factory):
        """Test rollback throws away uncommitted changes"""
        assert_update(books, del_query(books, "*:*"))
        assert_update(books, "<rollback/>")
        assert_update(books, commit(books))
        assert_query(books, req(request_factory, "*:*"), "//result[@numFound='4']")

    def test_optimize_commits(self, harness, request_factory):
        """Test optimize makes pending adds visible"""
        assert_update(harness, adoc(harness, "id", "1"))
        assert_update(harness, optimize(harness))
        assert_query(harness, req(request_factory, "*:*"), "//result[@numFound='1']")


class TestQueries:
    """Tests for query execution and the response format"""

    def test_response_header(self, books, request_factory):
        """Test status and echoed params"""
        assert_query(books, req(request_factory, "id:1"),
                     "//lst[@name='responseHeader']/int[@name='status'][.='0']",
                     "//lst[@name='params']/str[@name='q'][.='id:1']",
                     "//lst[@name='params']/str[@name='version'][.='2.2']")

    def test_term_query(self, books, request_factory):
        """Test field term query"""
        assert_query(books, req(request_factory, "title:neural"),
                     "//result[@numFound='1']",
                     "//doc/str[@name='id'][.='2']")

    def test_default_field_query(self, books, request_factory):
        """Test bare terms search every field"""
        assert_query(books, req(request_factory, "finance"), "//result[@numFound='1']")

    def test_multi_valued_field_rendered_as_arr(self, books, request_factory):
        """Test repeated fields come back in order inside <arr>"""
        assert_query(books, req(request_factory, "id:1"),
                     "//arr[@name='cat']/str[1][.='ml']",
                     "//arr[@name='cat']/str[2][.='intro']",
                     "count(//arr[@name='cat']/str)=2")

    def test_required_and_prohibited(self, books, request_factory):
        """Test +/- clauses"""
        assert_query(books, req(request_factory, "+cat:ml -title:deep"),
                     "//result[@numFound='1']",
                     "//str[@name='id'][.='1']")

    def test_boolean_keywords(self, books, request_factory):
        """Test AND / OR / NOT"""
        assert_query(books, req(request_factory, "cat:ml AND NOT title:deep"),
                     "//result[@numFound='1']")
        assert_query(books, req(request_factory, "cat:finance OR title:cooking"),
                     "//result[@numFound='2']")

    def test_phrase_and_prefix(self, books, request_factory):
        """Test phrase and trailing-wildcard clauses"""
        assert_query(books, req(request_factory, 'title:"neural networks"'),
                     "//result[@numFound='1']")
        assert_query(books, req(request_factory, "title:port*"),
                     "//result[@numFound='1']")

    def test_field_exists(self, books, request_factory):
        """Test field:* matches documents having the field"""
        assert_query(books, req(request_factory, "cat:*"), "//result[@numFound='3']")

    def test_rows_and_start(self, books, request_factory):
        """Test pagination"""
        assert_query(books, req(request_factory, "q", "*:*", "rows", "2", "start", "1"),
                     "//result[@numFound='4'][@start='1']",
                     "count(//doc)=2",
                     "//doc[1]/str[@name='id'][.='2']")

    def test_default_rows_is_twenty(self, harness, request_factory):
        """Test the default page size"""
        for i in range(25):
            assert_update(harness, adoc(harness, "id", str(i)))
        assert_update(harness, commit(harness))
        assert_query(harness, req(request_factory, "*:*"),
                     "//result[@numFound='25']",
                     "count(//doc)=20")

    def test_sort(self, books, request_factory):
        """Test numeric sort descending"""
        assert_query(books, req(request_factory, "q", "*:*", "sort", "price desc"),
                     "//doc[1]/str[@name='id'][.='2']",
                     "//doc[4]/str[@name='id'][.='3']")

    def test_field_list_and_score(self, books, request_factory):
        """Test fl restricts fields and adds score"""
        assert_query(books, req(request_factory, "q", "title:neural", "fl", "id,score"),
                     "//result[@maxScore]",
                     "//doc/float[@name='score']",
                     "//doc/str[@name='id']",
                     "not(//doc/str[@name='title'])")

    def test_relevance_order(self, books, request_factory):
        """Test better matches rank first"""
        assert_query(books, req(request_factory, "q", "machine learning basics", "fl", "id"),
                     "//doc[1]/str[@name='id'][.='1']")

    def test_unknown_handler(self, books, request_factory):
        """Test unknown handlers answer with status 400"""
        assert_query(books, req(request_factory, "q", "*:*", "qt", "mystery"),
                     "//int[@name='status'][.='400']",
                     "//lst[@name='error']/str[@name='msg'][contains(., 'mystery')]")

    def test_bad_query_is_400(self, books, request_factory):
        """Test parse errors answer with status 400"""
        assert_query(books, req(request_factory, "title:"),
                     "//int[@name='status'][.='400']")

    def test_bad_sort_is_400(self, books, request_factory):
        """Test unparsable sort answers with status 400"""
        assert_query(books, req(request_factory, "q", "*:*", "sort", "price sideways"),
                     "//int[@name='status'][.='400']")

    @pytest.mark.parametrize("param", ["start", "rows"])
    def test_negative_paging_is_400(self, books, request_factory, param):
        """Test negative start or rows answers with status 400 instead of wrapping"""
        assert_query(books, req(request_factory, "q", "*:*", param, "-1"),
                     "//int[@name='status'][.='400']",
                     "not(//result)")

    def test_searcher_released_after_assert(self, books, request_factory):
        """Test assert_query leaves no searcher behind"""
        assert_query(books, req(request_factory, "*:*"), "//doc")
        assert books.open_searchers == 0

    def test_unclosed_request_holds_searcher(self, books, request_factory):
        """Test a raw query keeps its searcher until the request closes"""
        request = req(request_factory, "*:*")
        books.query(request)
        assert books.open_searchers == 1
        request.close()
        assert books.open_searchers == 0

    def test_searcher_is_point_in_time(self, books, request_factory):
        """Test a request's searcher does not see later commits"""
        with req(request_factory, "*:*") as request:
            books.query(request)
            index_docs(books, ("id", "5"))
            response = books.query(request)
        assert books.validate_xpath(response, "//result[@numFound='4']") is None


class TestValidateXPath:
    """Tests for structural test evaluation"""

    RESPONSE = '<response><result numFound="2"><doc/><doc/></result></response>'

    def test_all_hold(self, harness):
        assert harness.validate_xpath(self.RESPONSE, "//result[@numFound='2']", "count(//doc)=2") is None

    def test_first_failure_returned(self, harness):
        result = harness.validate_xpath(self.RESPONSE, "//doc", "//missing", "//also-missing")
        assert result == "//missing"

    def test_number_and_string_results(self, harness):
        assert harness.validate_xpath(self.RESPONSE, "count(//doc)") is None
        assert harness.validate_xpath(self.RESPONSE, "count(//nothing)") == "count(//nothing)"
        assert harness.validate_xpath(self.RESPONSE, "string(//result/@numFound)") is None

    def test_invalid_expression(self, harness):
        with pytest.raises(InvalidXPathError):
            harness.validate_xpath(self.RESPONSE, "//[")

    def test_invalid_response(self, harness):
        with pytest.raises(InvalidXMLError):
            harness.validate_xpath("<unclosed>", "//x")

    def test_relative_paths_start_at_document(self, harness):
        """Test relative expressions are evaluated from the document node"""
        assert harness.validate_xpath(self.RESPONSE, "response/result[@numFound='2']", "count(*)=1") is None
        assert harness.validate_xpath(self.RESPONSE, "result") == "result"
