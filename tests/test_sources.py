import json

from cfip.sources import (
    DEFAULT_SOURCES,
    GenericRegex,
    HtmlTableCell,
    JsonArrayField,
    Source,
    extract,
)


BESTCF = Source("bestcf", "https://example.test/bestcf", JsonArrayField("data"))
HOSTMONIT = Source("hostmonit", "https://example.test/hostmonit", JsonArrayField("info"))
WETEST = Source("wetest", "https://example.test/wetest", HtmlTableCell())
PLAIN = Source("plain", "https://example.test/plain", GenericRegex())


def test_json_source_reads_ip_field_and_skips_junk():
    body = '{"data":[{"ip":"1.2.3.4"},{"ip":"not-an-ip"}]}'

    assert extract(body, BESTCF) == ["1.2.3.4"]


def test_json_source_uses_its_own_array_key():
    body = json.dumps({
        "info": [{"ip": "104.16.1.1", "colo": "HKG"}, {"ip": "104.16.1.2:443"}, {"latency": 12}],
        "data": [{"ip": "9.9.9.9"}],
    })

    assert extract(body, HOSTMONIT) == ["104.16.1.1", "104.16.1.2"]


def test_json_source_ignores_non_string_fields_and_non_object_items():
    body = json.dumps({"data": [{"ip": 16843009}, "1.1.1.1", None, {"ip": "2.2.2.2"}]})

    assert extract(body, BESTCF) == ["2.2.2.2"]


def test_malformed_json_falls_back_to_generic_match():
    body = "upstream error, last good: 5.6.7.8"

    assert extract(body, BESTCF) == ["5.6.7.8"]


def test_unexpected_json_shape_falls_back_to_generic_match():
    body = json.dumps({"result": ["3.3.3.3", "4.4.4.4"]})

    assert extract(body, HOSTMONIT) == ["3.3.3.3", "4.4.4.4"]


def test_json_top_level_list_falls_back_to_generic_match():
    assert extract('["7.7.7.7"]', BESTCF) == ["7.7.7.7"]


def test_html_table_cells_are_extracted():
    body = """
    <html><head><title>Updated 2024-01-01 10.20.30.40</title></head>
    <table>
      <tr><th>IP</th><th>Latency</th></tr>
      <tr><td class="ip">9.9.9.9</td><td>120ms</td></tr>
      <TD> 8.8.4.4 </TD>
    </table></html>
    """

    assert extract(body, WETEST) == ["9.9.9.9", "8.8.4.4"]


def test_html_cells_without_a_valid_address_fall_back_to_generic_match():
    body = "<td>1234.5.6.7</td><p>backup 5.5.5.5</p>"

    assert extract(body, WETEST) == ["5.5.5.5"]


def test_html_without_table_cells_falls_back_to_generic_match():
    body = "<ul><li>1.0.0.1</li><li>1.1.1.1</li></ul>"

    assert extract(body, WETEST) == ["1.0.0.1", "1.1.1.1"]


def test_generic_match_keeps_duplicates_and_reserved_addresses():
    body = "1.1.1.1\n10.0.0.1 1.1.1.1, 999.1.1.1; version 1.2.3"

    assert extract(body, PLAIN) == ["1.1.1.1", "10.0.0.1", "1.1.1.1", "999.1.1.1"]


def test_generic_match_on_empty_body():
    assert extract("", PLAIN) == []


def test_default_sources_cover_every_kind():
    kinds = {type(s.kind) for s in DEFAULT_SOURCES}

    assert kinds == {JsonArrayField, HtmlTableCell, GenericRegex}
    assert len({s.name for s in DEFAULT_SOURCES}) == len(DEFAULT_SOURCES)
    assert all(s.url.startswith("https://") for s in DEFAULT_SOURCES)
