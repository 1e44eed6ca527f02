#!/usr/bin/env python3
"""Process a bill PDF through the ingestion pipeline and print the stored record."""
import asyncio
import json
import sys
from pathlib import Path

from energy_bills.config import Settings
from energy_bills.exceptions import BillsError
from energy_bills.extraction import build_extractor
from energy_bills.models.bill import BillResponse, BillUpload
from energy_bills.pipeline import PDF_CONTENT_TYPE, IngestionPipeline
from energy_bills.storage.database import build_engine, build_session_factory, close_db, create_schema
from energy_bills.storage.files import LocalFileStorage
from energy_bills.storage.store import BillStore
from energy_bills.utils.logging import setup_logging


async def main(pdf_path: str) -> None:
    """Process a single PDF and print the result."""
    path = Path(pdf_path)
    if not path.exists():
        print(f"Error: File not found: {pdf_path}")
        sys.exit(1)

    print(f"Processing: {path.name}")
    print("-" * 50)

    settings = Settings()
    setup_logging(settings.log_level)
    engine = build_engine(settings.database_url.get_secret_value())
    if settings.auto_create_schema:
        await create_schema(engine)

    store = BillStore(build_session_factory(engine))
    files = LocalFileStorage(settings.upload_dir)
    pipeline = IngestionPipeline(store, build_extractor(settings), files, max_file_size=settings.max_file_size)

    file_bytes = path.read_bytes()
    print(f"File size: {len(file_bytes):,} bytes")

    try:
        stored_path = await files.save(file_bytes, path.name)
        result = await pipeline.ingest(BillUpload(
            content=file_bytes,
            filename=path.name,
            content_type=PDF_CONTENT_TYPE,
            size=len(file_bytes),
            file_path=stored_path,
        ))
        bill = await store.find_by_id(result.bill_id)

        print(f"\nBill ID: {result.bill_id}")
        print(f"Processing time: {result.processing_time}ms")
        print(f"Customer: {bill.customer_number}")
        print(f"Reference month: {bill.reference_month}")
        print(f"Total consumption: {bill.total_energy_consumption} kWh")
        print(f"Compensated energy: {bill.compensated_energy_quantity} kWh")
        print(f"Value without GD: R$ {bill.total_value_without_gd:.2f}")
        print(f"GD economy: R$ {bill.gd_economy:.2f}")

        output_path = path.with_suffix(".json")
        with open(output_path, "w") as f:
            json.dump(BillResponse.model_validate(bill).model_dump(mode="json", by_alias=True), f, indent=2)
        print(f"\nFull record saved to: {output_path}")

    except BillsError as e:
        print(f"Error ({type(e).__name__}): {e.message}")
        sys.exit(1)
    finally:
        await close_db(engine)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/process_bill.py <path-to-pdf>")
        sys.exit(1)

    asyncio.run(main(sys.argv[1]))
