"""Prometheus counters exposed on ``/metrics`` move with invoice operations."""
from __future__ import annotations

import re
from typing import Dict

import pytest

pytestmark = pytest.mark.integration

METRIC_LINE_RE = re.compile(r'^(?P<name>[a-z_]+)(?:\{(?P<labels>[^}]*)\})?\s+(?P<value>[0-9.e+-]+)$')


def _parse(metrics_text: str) -> Dict[str, float]:
    values: Dict[str, float] = {}
    for line in metrics_text.splitlines():
        m = METRIC_LINE_RE.match(line.strip())
        if m:
            key = m.group("name") + (f"{{{m.group('labels')}}}" if m.group("labels") else "")
            values[key] = float(m.group("value"))
    return values


async def _scrape(client) -> Dict[str, float]:
    resp = await client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    return _parse(resp.text)


@pytest.mark.asyncio
async def test_invoice_counters_increment(async_client, invoice_payload):
    before = await _scrape(async_client)

    created = (await async_client.post("/api/v1/invoices", json=invoice_payload())).json()["data"]
    ok = {**invoice_payload(), "invoiceNumber": created["number"]}
    await async_client.put(f"/api/v1/invoices/{created['id']}", json=ok)
    bad = {**invoice_payload(), "invoiceNumber": "2025000009"}
    await async_client.put(f"/api/v1/invoices/{created['id']}", json=bad)

    after = await _scrape(async_client)

    def delta(key: str) -> float:
        return after.get(key, 0.0) - before.get(key, 0.0)

    assert delta("invoices_created_total") == 1
    assert delta("invoices_updated_total") == 1
    assert delta('invoice_number_validation_total{result="valid"}') == 1
    assert delta('invoice_number_validation_total{result="invoice_number_out_of_sequence"}') == 1
