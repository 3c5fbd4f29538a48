"""
Run a patient or production spreadsheet import from CLI.

Without --commit the file is only analyzed and the preview is printed.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from app.domain.bulk_import import ImportType
from app.readers.tabular_reader import read_tabular
from app.services.bulk_import_service import get_bulk_import_service
from app.services.spreadsheet_export import build_error_report, build_template
from app.storage.errors import ReferenceUnavailableError
from app.storage.sqlalchemy_storage import (
    SQLAlchemyPatientStorage,
    SQLAlchemyProductionStorage,
    SQLAlchemyReferenceSource,
)
from app.validators.mapping_validator import SchemaError
from db.session import SessionLocal


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Analyze or import a BPA spreadsheet.")
    parser.add_argument("path", nargs="?", help="CSV or XLSX file to import.")
    parser.add_argument(
        "--type",
        dest="import_type",
        choices=[item.value for item in ImportType],
        required=True,
        help="Import flow to run.",
    )
    parser.add_argument(
        "--commit",
        action="store_true",
        help="Persist valid rows after analysis.",
    )
    parser.add_argument(
        "--error-report",
        dest="error_report",
        default=None,
        help="Write rejected rows to this xlsx path.",
    )
    parser.add_argument(
        "--template",
        dest="template",
        default=None,
        help="Write a blank import template to this xlsx path and exit.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    import_type = ImportType(args.import_type)
    if args.template:
        Path(args.template).write_bytes(build_template(import_type))
        print(json.dumps({"template": args.template}, indent=2))
        return 0

    if not args.path:
        parser.error("path is required unless --template is given")

    source = Path(args.path)
    service = get_bulk_import_service()

    try:
        sheet = read_tabular(source.read_bytes(), source.name)
        with SessionLocal() as db:
            preview = service.analyze(
                sheet,
                import_type,
                reference_source=SQLAlchemyReferenceSource(session=db),
            )
            if not args.commit:
                if args.error_report:
                    Path(args.error_report).write_bytes(build_error_report(import_type, preview.invalid_rows))
                payload = {
                    "import_type": import_type.value,
                    "total_rows": preview.total_rows,
                    "valid_rows": len(preview.valid_rows),
                    "invalid_rows": len(preview.invalid_rows),
                    "skipped_blank_rows": preview.skipped_blank_rows,
                    "ambiguities": preview.field_map.ambiguities,
                    "errors": [
                        {"row_number": error.row_number, "message": error.message}
                        for error in preview.invalid_rows
                    ],
                }
                print(json.dumps(payload, indent=2, ensure_ascii=False))
                return 0

            if import_type is ImportType.PATIENT:
                storage = SQLAlchemyPatientStorage(session=db)
            else:
                storage = SQLAlchemyProductionStorage(session=db)
            report = service.commit(
                preview,
                storage=storage,
                progress_callback=lambda progress: print(f"progress {progress}%", file=sys.stderr),
            )
            if args.error_report:
                Path(args.error_report).write_bytes(build_error_report(import_type, report.errors))
    except SchemaError as exc:
        print(json.dumps(exc.to_dict(), indent=2, ensure_ascii=False), file=sys.stderr)
        return 2
    except ReferenceUnavailableError as exc:
        print(str(exc), file=sys.stderr)
        return 3

    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    return 0 if report.chunks_failed == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
