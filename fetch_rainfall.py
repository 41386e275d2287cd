"""Fetch both rainfall tables for a point or an address and write them as CSV.

    python fetch_rainfall.py --lat 32.2226 --lon -110.9747
    python fetch_rainfall.py --address "1600 Amphitheatre Parkway, Mountain View, CA"
"""

import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from rainfallretriever.config import configure_logging, load_settings  # noqa: E402
from rainfallretriever.geocoding import make_geocoder  # noqa: E402
from rainfallretriever.models import CoordinateForm, InputMode, Phase, TableKind  # noqa: E402
from rainfallretriever.orchestrator import RetrievalOrchestrator  # noqa: E402
from rainfallretriever.presentation import csv_filename, error_message, table_frame, to_csv  # noqa: E402
from rainfallretriever.rainfall import RainfallClient  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--lat", default="32.2226")
    parser.add_argument("--lon", default="-110.9747")
    parser.add_argument("--address", default="")
    parser.add_argument("--out", type=Path, default=Path("results"))
    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging(settings.log_level)

    form = CoordinateForm(
        latitude=args.lat,
        longitude=args.lon,
        address=args.address,
        mode=InputMode.ADDRESS if args.address else InputMode.COORDS,
    )
    orchestrator = RetrievalOrchestrator(
        geocoder=make_geocoder(settings),
        rainfall_client=RainfallClient(
            api_key=settings.anthropic_api_key,
            model=settings.model,
            max_tokens=settings.max_tokens,
        ),
        form=form,
    )
    asyncio.run(orchestrator.submit())

    state = orchestrator.state
    if state.phase is Phase.FAILED and state.error is not None:
        print(f"Error: {error_message(state.error)}", file=sys.stderr)
        return 1
    if state.phase is not Phase.SUCCESS or state.dataset is None:
        print(f"Error: retrieval ended in state {state.phase.value}", file=sys.stderr)
        return 1

    args.out.mkdir(parents=True, exist_ok=True)
    for kind in TableKind:
        print(f"\nRainfall {kind.value} ({kind.unit}) at {form.latitude}, {form.longitude}")
        print(table_frame(state.dataset, kind).to_string(index=False))
        path = args.out / csv_filename(kind, form.latitude, form.longitude)
        path.write_text(to_csv(state.dataset, kind), encoding="utf-8")
        print(f"→ {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
