"""CLI for warming the Last.fm and geocoding snapshots before a build.

Usage::

    # Last.fm info for every band name in a file (one name per line)
    python -m src.cli.prefetch lastfm --names bands.txt --output .cache/lastfm-artists.json

    # Reverse geocoding for every "lat,lon" line in a file
    python -m src.cli.prefetch geocoding --coords coords.txt --output .cache/geocoding.json

Both commands resume from the existing snapshot at ``--output`` and soft-fail:
a disabled feature, a missing API key or an early stop still exits 0 so the
build can continue without enrichment.  Blank lines and ``#`` comments in the
input files are ignored.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import httpx

from src.config.loader import load_config, load_lookup_configs
from src.config.lookup_clients import LASTFM, PHOTON
from src.config.settings import Settings
from src.utils.errors import ConfigurationError
from src.utils.logging import configure_logging, get_logger
from src.utils.text_normalizer import parse_coordinate_pair

_DEFAULT_LASTFM_OUTPUT = ".cache/lastfm-artists.json"
_DEFAULT_GEOCODING_OUTPUT = ".cache/geocoding.json"

_logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Input readers
# ---------------------------------------------------------------------------


def read_names(path: Path) -> list[str]:
    """Return the non-empty, non-comment lines of *path*, de-duplicated in order."""
    names: list[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        name = line.strip()
        if name and not name.startswith("#"):
            names.append(name)
    return list(dict.fromkeys(names))


def read_coordinates(path: Path) -> list[tuple[float, float]]:
    """Return every parseable ``lat,lon`` pair in *path*."""
    coordinates: list[tuple[float, float]] = []
    for number, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        pair = parse_coordinate_pair(line)
        if pair is not None:
            coordinates.append(pair)
        elif line.strip() and not line.strip().startswith("#"):
            _logger.warning("prefetch_coordinate_skipped", line=number, raw=line.strip())
    return coordinates


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_lastfm(args: argparse.Namespace, app_settings: Settings) -> int:
    """Prefetch Last.fm artist info into a snapshot."""
    from src.providers.music_db.lastfm_provider import LastFmProvider
    from src.services.lookup_client import LookupClient
    from src.services.prefetch_service import PrefetchService
    from src.services.prefetch_store import ARTISTS_SECTION, PrefetchStore

    if not app_settings.enable_lastfm:
        print("ENABLE_LASTFM is off; skipping Last.fm prefetch.")
        return 0

    names = read_names(Path(args.names))
    store = PrefetchStore(args.output)
    existing = store.read(ARTISTS_SECTION)
    configs = load_lookup_configs(app_settings.lookup_config_path)

    async with httpx.AsyncClient() as client:
        try:
            provider = LastFmProvider(
                http_client=client,
                lookup_client=LookupClient(LASTFM, configs[LASTFM]),
                api_key=app_settings.lastfm_api_key,
                timeout=app_settings.http_timeout,
            )
        except ConfigurationError as exc:
            print(f"Skipping Last.fm prefetch: {exc}")
            return 0

        print(f"Fetching {len(names)} artists -> {store.path}")
        service = PrefetchService(time_budget=args.time_budget)
        result = await service.prefetch_artists(provider, names, existing=existing)

    store.write(ARTISTS_SECTION, result.entries, result.meta)
    _print_summary(len(result.entries), result.meta)
    return 0


async def _handle_geocoding(args: argparse.Namespace, app_settings: Settings) -> int:
    """Prefetch reverse-geocoded city names into a snapshot."""
    from src.providers.geocoding.photon_provider import PhotonProvider
    from src.services.lookup_client import LookupClient
    from src.services.prefetch_service import PrefetchService
    from src.services.prefetch_store import LOCATIONS_SECTION, PrefetchStore

    if not app_settings.enable_geocoding:
        print("ENABLE_GEOCODING is off; skipping geocoding prefetch.")
        return 0

    coordinates = read_coordinates(Path(args.coords))
    store = PrefetchStore(args.output)
    existing = store.read(LOCATIONS_SECTION)
    configs = load_lookup_configs(app_settings.lookup_config_path)

    async with httpx.AsyncClient() as client:
        provider = PhotonProvider(
            http_client=client,
            lookup_client=LookupClient(PHOTON, configs[PHOTON]),
            base_url=app_settings.photon_base_url,
            timeout=app_settings.http_timeout,
        )
        print(f"Fetching {len(coordinates)} locations -> {store.path}")
        service = PrefetchService(time_budget=args.time_budget)
        result = await service.prefetch_locations(provider, coordinates, existing=existing)

    meta = {**result.meta, "baseUrl": app_settings.photon_base_url}
    store.write(LOCATIONS_SECTION, result.entries, meta)
    _print_summary(len(result.entries), meta)
    return 0


def _print_summary(entries: int, meta: dict) -> None:
    if meta.get("stoppedEarly"):
        print(f"Stopped early ({meta.get('reason')}); wrote {entries} entries.")
    else:
        print(f"Done; wrote {entries} entries.")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _build_parser(prefetch_config: dict | None = None) -> argparse.ArgumentParser:
    """Build the argparse parser for the prefetch CLI."""
    prefetch_config = prefetch_config or {}
    time_budget = float(prefetch_config.get("time_budget", 300))

    parser = argparse.ArgumentParser(
        prog="python -m src.cli.prefetch",
        description="Prefetch Last.fm and geocoding data into JSON snapshots.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Prefetch commands")

    # -- lastfm --
    lastfm_parser = subparsers.add_parser("lastfm", help="Prefetch Last.fm artist info")
    lastfm_parser.add_argument(
        "--names", required=True, help="File with one band name per line"
    )
    lastfm_parser.add_argument(
        "--output",
        default=prefetch_config.get("lastfm_output", _DEFAULT_LASTFM_OUTPUT),
        help=f"Snapshot path (default: {_DEFAULT_LASTFM_OUTPUT})",
    )

    # -- geocoding --
    geo_parser = subparsers.add_parser("geocoding", help="Prefetch reverse geocoding")
    geo_parser.add_argument(
        "--coords", required=True, help="File with one 'lat,lon' pair per line"
    )
    geo_parser.add_argument(
        "--output",
        default=prefetch_config.get("geocoding_output", _DEFAULT_GEOCODING_OUTPUT),
        help=f"Snapshot path (default: {_DEFAULT_GEOCODING_OUTPUT})",
    )

    for sub in (lastfm_parser, geo_parser):
        sub.add_argument(
            "--time-budget",
            type=float,
            default=time_budget,
            help=f"Seconds before stopping early (default: {time_budget:g})",
        )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the prefetch tool."""
    app_settings = Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )
    config = load_config(app_settings.lookup_config_path)

    parser = _build_parser(config.get("prefetch"))
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "lastfm":
        exit_code = asyncio.run(_handle_lastfm(args, app_settings))
    elif args.command == "geocoding":
        exit_code = asyncio.run(_handle_geocoding(args, app_settings))
    else:
        parser.print_help()
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
