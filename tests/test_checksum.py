"""
Checksum tests: determinism, sensitivity and transitive upstream state.
"""
import zlib

import pytest

from deploymap.checksum import checksum, checksum_input, checksums
from deploymap.errors import CyclicReferenceError, MissingValueError
from deploymap.graph import ResourceGraph
from deploymap.models.resource import BicepResource


def _resource(name="r", template="param a string", **params):
    r = BicepResource(name, template_string=template)
    for k, v in params.items():
        r.add_parameter(k, v)
    return r


class TestChecksumFormat:
    def test_known_crc_value(self):
        # CRC-32 of "123456789" is 0xCBF43926, bytes emitted little-endian
        r = _resource(template="123456789")
        assert checksum(r, ResourceGraph()) == "2639f4cb"

    def test_lowercase_hex_of_combined_input(self):
        r = _resource(a="x", b=["p", "q"])
        text = checksum_input(r, ResourceGraph())
        assert text == "a=\"x\";b=\"['p', 'q']\"param a string"
        expected = zlib.crc32(text.encode("utf-8")).to_bytes(4, "little").hex()
        assert checksum(r, ResourceGraph()) == expected
        assert len(expected) == 8 and expected == expected.lower()

    def test_null_parameter_contributes_empty_value(self):
        r = _resource(a=None)
        assert checksum_input(r, ResourceGraph()).startswith("a=param")


class TestDeterminism:
    def test_independent_of_name(self):
        graph = ResourceGraph()
        assert checksum(_resource("one", a="x"), graph) == checksum(_resource("two", a="x"), graph)

    def test_independent_of_insertion_order(self):
        first = BicepResource("r", template_string="t")
        first.add_parameter("b", "y")
        first.add_parameter("a", "x")
        second = BicepResource("r", template_string="t")
        second.add_parameter("a", "x")
        second.add_parameter("b", "y")
        assert checksum(first, ResourceGraph()) == checksum(second, ResourceGraph())

    def test_ordinal_key_order(self):
        r = _resource(B="1", a="2")
        # uppercase sorts before lowercase
        assert checksum_input(r, ResourceGraph()).startswith('B="1";a="2"')

    def test_repeatable(self):
        r = _resource(a="x")
        assert checksum(r, ResourceGraph()) == checksum(r, ResourceGraph())


class TestSensitivity:
    def test_single_character_template_edits(self):
        graph = ResourceGraph()
        base = "param name string = 'abc'"
        edits = [base, base.replace("abc", "abd"), base.replace("abc", "xbc"), base + " ", base.upper()]
        sums = {checksum(_resource(template=t), graph) for t in edits}
        assert len(sums) == len(edits)

    def test_parameter_change(self):
        graph = ResourceGraph()
        assert checksum(_resource(a="x"), graph) != checksum(_resource(a="y"), graph)

    def test_file_is_reread(self, tmp_path):
        path = tmp_path / "main.bicep"
        path.write_text("param a string")
        r = BicepResource("f", template_file=str(path))
        before = checksum(r, ResourceGraph())
        path.write_text("param b string")
        assert checksum(r, ResourceGraph()) != before

    def test_bundled_asset(self):
        r = BicepResource("store", template_asset="storage.bicep")
        assert len(checksum(r, ResourceGraph())) == 8


class TestReferences:
    def _pair(self):
        graph = ResourceGraph()
        db = graph.add_bicep_template_string("db", "output cs string = 'x'")
        db.add_parameter("sku", "Basic")
        api = graph.add_bicep_template_string("api", "param cs string")
        api.add_parameter("cs", db.get_output("cs"))
        return graph, db, api

    def test_missing_upstream_output(self):
        graph, _, api = self._pair()
        with pytest.raises(MissingValueError):
            checksum(api, graph)

    def test_upstream_change_propagates(self):
        graph, db, api = self._pair()
        db.outputs["cs"] = "Server=db"
        before = checksum(api, graph)
        db.add_parameter("sku", "Premium")
        assert checksum(api, graph) != before

    def test_reference_token_uses_upstream_checksum(self):
        graph, db, api = self._pair()
        db.outputs["cs"] = "Server=db"
        assert checksum_input(api, graph).startswith(f'cs="db={checksum(db, graph)}"')

    def test_cycle_detected(self):
        graph = ResourceGraph()
        a = graph.add_bicep_template_string("a", "x")
        b = graph.add_bicep_template_string("b", "y")
        a.add_parameter("fromB", b.get_output("out"))
        b.add_parameter("fromA", a.get_output("out"))
        a.outputs["out"] = "1"
        b.outputs["out"] = "2"
        with pytest.raises(CyclicReferenceError) as excinfo:
            checksum(a, graph)
        assert excinfo.value.chain == ["a", "b", "a"]

    def test_self_reference_detected(self):
        graph = ResourceGraph()
        a = graph.add_bicep_template_string("a", "x")
        a.add_parameter("me", a.get_output("out"))
        a.outputs["out"] = "1"
        with pytest.raises(CyclicReferenceError):
            checksum(a, graph)

    def test_checksums_for_graph(self):
        graph, db, _ = self._pair()
        db.outputs["cs"] = "Server=db"
        result = checksums(graph)
        assert list(result) == ["db", "api"]

    def test_checksums_missing_ok(self):
        graph, db, _ = self._pair()
        with pytest.raises(MissingValueError):
            checksums(graph)
        result = checksums(graph, missing_ok=True)
        assert result["db"] == checksum(db, graph)
        assert result["api"] is None
