import json
import csv
from pathlib import Path
from datetime import datetime
from typing import Dict, List, Iterable

from keyscope.common.models import CredentialRecord

EXPORT_FORMATS = ("json", "csv", "md", "txt")

# Fields shown as headings or already covered by the title line
_HEADING_KEYS = ("title", "class")
_SENSITIVE_KEYS = ("payload", "v_data")


def group_records(records: Iterable[CredentialRecord], include_payload: bool = False) -> Dict[str, List[Dict]]:
    """Splits records into one table per record class."""
    tables: Dict[str, List[Dict]] = {}
    for record in records:
        name = record.record_class.label.lower()
        tables.setdefault(name, []).append(record.to_dict(include_payload=include_payload))
    return tables


class RecordExporter:
    """Writes a keychain listing to disk in one of EXPORT_FORMATS."""

    def __init__(self, access_group: str, banner: str = ""):
        self.access_group = access_group
        self.banner = banner.strip() if banner else ""
        self.timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')

    def export(self, data: Dict[str, List[Dict]], output_path: Path, fmt: str):
        fmt = fmt.lower()
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {fmt}")
        getattr(self, f"_to_{fmt}")(data, output_path)

    def _to_json(self, data: Dict, path: Path):
        meta = {"metadata": {"generated_at": self.timestamp, "access_group": self.access_group}}
        path.write_text(json.dumps({**meta, **data}, indent=4, ensure_ascii=False), encoding='utf-8')

    def _to_csv(self, data: Dict, path: Path):
        # One CSV per record class, next to each other in an export folder
        export_dir = path if not path.suffix else path.parent / f"{path.stem}_export"
        export_dir.mkdir(parents=True, exist_ok=True)

        for table_name, rows in data.items():
            if not rows: continue
            headers = sorted(set().union(*(d.keys() for d in rows)))
            with open(export_dir / f"{table_name}.csv", "w", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=headers)
                writer.writeheader()
                writer.writerows(rows)

    def _to_md(self, data: Dict, path: Path):
        lines = [f"```\n{self.banner}\n```\n" if self.banner else "# Keychain Report"]
        lines.append(f"> **Access Group**: `{self.access_group}`  \n> **Export Time**: `{self.timestamp}`\n")

        for table_name, rows in data.items():
            lines.append(f"\n## {table_name.title()} ({len(rows)} items)")
            for i, entry in enumerate(rows, 1):
                lines.append(f"\n### {i}. {entry.get('title', 'Untitled')}")
                for k, v in entry.items():
                    if k in _HEADING_KEYS or v in ("", None):
                        continue
                    if k.lower() in _SENSITIVE_KEYS:
                        lines.append(f"- **{k}**: 🔐 `{v}`")
                    else:
                        lines.append(f"- **{k}**: {v}")
                lines.append("\n---")
        path.write_text("\n".join(lines), encoding='utf-8')

    def _to_txt(self, data: Dict, path: Path):
        lines = [self.banner if self.banner else "KEYCHAIN REPORT"]
        lines.append(f"Access Group: {self.access_group}")
        lines.append(f"Export Time: {self.timestamp}\n" + "=" * 40)
        for table_name, rows in data.items():
            lines.append(f"\n[{table_name.upper()}]")
            for entry in rows:
                lines.append("-" * 30)
                for k, v in entry.items():
                    lines.append(f"{k:<18}: {v}")
        path.write_text("\n".join(lines), encoding='utf-8')
