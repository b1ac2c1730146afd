"""Consistency checks for the metric/page documentation registry."""

from evalboard.docs_ui import filter_glossary, glossary_frame
from evalboard.metrics_registry import METRICS, PAGES


def test_every_page_key_metric_is_documented():
    for page_id, doc in PAGES.items():
        for mid in doc.get("key_metrics") or []:
            assert mid in METRICS, f"{page_id} references undocumented metric {mid}"


def test_every_metric_has_name_category_and_definition():
    for mid, doc in METRICS.items():
        assert doc.get("name"), mid
        assert doc.get("category"), mid
        assert doc.get("definition"), mid


def test_glossary_frame_sorted_by_category():
    df = glossary_frame()
    assert len(df) == len(METRICS)
    assert list(df["category"]) == sorted(df["category"])


def test_filter_glossary_by_query_and_category():
    df = glossary_frame()
    latency = filter_glossary(df, categories=["Latency"])
    assert set(latency["metric_id"]) == {"ttft", "total_generation"}
    assert "success_rate" in set(filter_glossary(df, query="THRESHOLD")["metric_id"])
    assert filter_glossary(df, query="no-such-metric").empty


def test_empty_registry_gives_empty_frame():
    assert glossary_frame({}).empty
