from __future__ import annotations

import csv
import dataclasses
from collections.abc import Iterable
from pathlib import Path

from openpyxl import Workbook

from agencyops.services.clients import CLIENTS
from agencyops.services.deliverables import DELIVERABLES
from agencyops.services.invoices import INVOICES
from agencyops.services.repository import EntitySpec, StoreLike, build_query
from agencyops.services.tasks import TASKS

SHEETS: tuple[EntitySpec, ...] = (CLIENTS, DELIVERABLES, INVOICES, TASKS)


def _records(store: StoreLike, spec: EntitySpec) -> list:
    rows = store.fetch_all(spec.read_table, **build_query(spec, None))
    return [spec.mapper(row) for row in rows]


def _headers(records: list) -> list[str]:
    if not records:
        return []
    return [f.name for f in dataclasses.fields(records[0])]


def export_excel(store: StoreLike, out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    wb.remove(wb.active)

    for spec in SHEETS:
        ws = wb.create_sheet(title=spec.write_table)
        _write_sheet(ws, _records(store, spec))

    wb.save(out_path)
    return out_path


def export_csv_tables(store: StoreLike, out_dir: Path) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for spec in SHEETS:
        records = _records(store, spec)
        headers = _headers(records)
        csv_path = out_dir / f"{spec.write_table}.csv"
        with csv_path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle)
            writer.writerow(headers)
            for record in records:
                writer.writerow([getattr(record, h) for h in headers])
        written.append(csv_path)
    return written


def _write_sheet(ws, records: Iterable) -> None:
    records = list(records)
    if not records:
        return
    headers = _headers(records)
    ws.append(headers)
    for record in records:
        ws.append([getattr(record, h) for h in headers])
