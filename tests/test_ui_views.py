"""
Tests for the web shell: koi_explorer/ui/views.py
"""
import csv
import io
import json
import time

import pytest

from conftest import FakeResponse
from koi_explorer.ui import views
from koi_explorer.ui.state import initial_state, start_search
from koi_explorer.ui.views import SessionStore, store


def _search(client, fake_get, rows):
    fake_get.responses = [FakeResponse(200, json.dumps(rows))]
    return client.post("/search")


def test_index_before_search(client):
    resp = client.get("/")
    html = resp.get_data(as_text=True)
    assert resp.status_code == 200
    assert "Ready to search the stars." in html
    assert "koi_disposition IN (&#39;CANDIDATE&#39;, &#39;CONFIRMED&#39;)" in html
    assert "Export Options" not in html


def test_filters_update_query(client):
    client.post("/filters", data={"planet_types": ["ROCKY", "GAS_GIANT"], "host_name": "Kepler"})
    html = client.get("/").get_data(as_text=True)
    code = html.split("<code>")[1].split("</code>")[0]
    assert "WHERE koi_disposition" not in code
    assert "koi_disposition IN" not in code
    assert "(koi_prad &lt; 1.6 OR koi_prad &gt;= 4)" in html
    assert "kepler_name LIKE &#39;%Kepler%&#39;" in html


def test_search_sends_current_query(client, fake_get, settings, sample_rows):
    resp = _search(client, fake_get, sample_rows)
    assert resp.status_code == 302

    call = fake_get.calls[0]
    assert call["url"] == settings.api_url
    assert call["params"]["format"] == "json"
    assert call["params"]["query"].endswith("WHERE koi_disposition IN ('CANDIDATE', 'CONFIRMED')")

    html = client.get("/").get_data(as_text=True)
    assert "3 records found." in html
    assert "Export Options" in html
    assert "K00752.01" in html
    assert "https://exoplanetarchive.ipac.caltech.edu/overview/Kepler-227%20b" in html


def test_empty_result_set(client, fake_get):
    _search(client, fake_get, [])
    html = client.get("/").get_data(as_text=True)
    assert "Ready to search the stars." not in html
    assert "No records found." in html
    assert "No results to display" in html
    assert "Export Options" not in html


def test_failed_search_shows_error_panel(client, fake_get):
    fake_get.responses = [FakeResponse(500, '{"error": "Failed to fetch data from NASA API"}', "Internal Server Error")]
    client.post("/search")
    html = client.get("/").get_data(as_text=True)
    assert "Search Failed" in html
    assert "API Error (500): Failed to fetch data from NASA API" in html
    assert "<table>" not in html


def test_table_search_and_sort(client, fake_get, sample_rows):
    _search(client, fake_get, sample_rows)

    html = client.get("/", query_string={"q": "KEPLER-227"}).get_data(as_text=True)
    assert "K00752.01" in html
    assert "K00753.01" not in html
    assert "(filtered from 3)" in html

    html = client.get("/", query_string={"sort": "koi_prad", "dir": "desc"}).get_data(as_text=True)
    assert html.index("K00753.01") < html.index("K00752.01") < html.index("K00754.01")


def test_pagination(client, fake_get):
    rows = [{"kepoi_name": f"K{i:05d}.01"} for i in range(60)]
    _search(client, fake_get, rows)

    html = client.get("/", query_string={"page": 3}).get_data(as_text=True)
    assert "Page 3 of 3" in html
    assert "K00050.01" in html
    assert "K00049.01" not in html
    assert "Showing 51 to 60 of 60 results" in html


def test_export_complete_csv(client, fake_get, sample_rows):
    _search(client, fake_get, sample_rows)

    resp = client.get("/export/complete")
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert "koi_data_complete.csv" in resp.headers["Content-Disposition"]

    records = list(csv.reader(io.StringIO(resp.get_data(as_text=True))))
    assert records[0] == list(sample_rows[0].keys())
    assert len(records) == 4


def test_export_json(client, fake_get, sample_rows):
    _search(client, fake_get, sample_rows)
    resp = client.get("/export/json")
    assert "koi_data.json" in resp.headers["Content-Disposition"]
    assert json.loads(resp.get_data(as_text=True)) == sample_rows


def test_export_formatted(client, fake_get, sample_rows):
    _search(client, fake_get, sample_rows)
    resp = client.get("/export/formatted")
    assert "koi_data_formatted.csv" in resp.headers["Content-Disposition"]
    assert resp.get_data(as_text=True).startswith("KOI Name,Kepler Name,KepID")


def test_export_without_results_redirects(client):
    resp = client.get("/export/complete")
    assert resp.status_code == 302


def test_unknown_export_format(client):
    assert client.get("/export/xml").status_code == 404


def _query_code(client):
    html = client.get("/").get_data(as_text=True)
    return html.split("<code>")[1].split("</code>")[0]


def _sid(client):
    client.get("/")
    with client.session_transaction() as sess:
        return sess["sid"]


def test_disposition_order_follows_selection(client):
    client.post("/filters", data={"dispositions": ["CONFIRMED"]})
    client.post("/filters", data={"dispositions": ["CANDIDATE", "CONFIRMED"]})
    assert "koi_disposition IN (&#39;CONFIRMED&#39;, &#39;CANDIDATE&#39;)" in _query_code(client)


def test_unchecked_values_are_dropped_and_order_kept(client):
    client.post("/filters", data={"planet_types": ["GAS_GIANT"]})
    client.post("/filters", data={"planet_types": ["ROCKY", "GAS_GIANT"]})
    assert "(koi_prad &gt;= 4 OR koi_prad &lt; 1.6)" in _query_code(client)

    client.post("/filters", data={"planet_types": ["ROCKY"]})
    code = _query_code(client)
    assert "(koi_prad &lt; 1.6)" in code
    assert "koi_prad &gt;= 4" not in code


def test_negative_page_shows_no_rows(client, fake_get):
    rows = [{"kepoi_name": f"K{i:05d}.01"} for i in range(60)]
    _search(client, fake_get, rows)

    html = client.get("/", query_string={"page": -1}).get_data(as_text=True)
    assert "K00010.01" not in html
    assert "K00030.01" not in html
    assert "No data available." in html


def test_unexpected_failure_does_not_leave_search_locked(client, monkeypatch):
    def broken_fetch(query, api_url):
        raise RuntimeError("boom")

    _sid(client)
    monkeypatch.setattr(views, "fetch_exoplanet_data", broken_fetch)
    with pytest.raises(RuntimeError):
        client.post("/search")

    html = client.get("/").get_data(as_text=True)
    assert "Launch Search" in html
    assert "Searching..." not in html


def test_search_ignored_while_loading(client, fake_get):
    sid = _sid(client)
    store.put(sid, start_search(initial_state()))

    client.post("/search")

    assert fake_get.calls == []
    assert "Searching..." in client.get("/").get_data(as_text=True)


class TestSessionStore:
    def test_unknown_session_gets_initial_state(self):
        assert SessionStore().get("nobody") == initial_state()

    def test_bounded_size(self):
        sessions = SessionStore(maxsize=3)
        for i in range(50):
            sessions.put(f"sid-{i}", start_search(initial_state()))
        assert len(sessions) == 3
        assert sessions.get("sid-49").is_loading

    def test_expired_entries_are_dropped(self):
        sessions = SessionStore(ttl_seconds=0.05)
        sessions.put("a", start_search(initial_state()))
        assert sessions.get("a").is_loading
        time.sleep(0.1)
        assert not sessions.get("a").is_loading
        assert len(sessions) == 0

    def test_begin_search_claims_once(self):
        sessions = SessionStore()
        assert sessions.begin_search("a") == initial_state()
        assert sessions.get("a").is_loading
        assert sessions.begin_search("a") is None


def test_many_clients_do_not_grow_store_past_limit(app, fake_get, monkeypatch):
    monkeypatch.setattr(views, "store", SessionStore(maxsize=5))
    for _ in range(20):
        client = app.test_client()
        client.post("/filters", data={"dispositions": ["CANDIDATE"]})
    assert len(views.store) == 5
