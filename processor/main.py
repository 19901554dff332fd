"""
GeoPulse Processor — Main Entry Point

  python -m processor.main

Startup (any failure here is fatal):
  1. Load ProcessorConfig from the environment
  2. Build the SpatialIndex from the GeoNames dump
  3. Ping InfluxDB
  4. Load config/sources.json

Then one APScheduler interval job per source:
  fetch readings → Pipeline.run() → InfluxWriter

Jobs share the scheduler's thread pool (PROCESSOR_WORKERS threads); a
source never overlaps with itself. The main thread blocks until SIGINT
or SIGTERM.
"""

import logging
import signal
import sys
import time
from datetime import datetime, timezone
from typing import List

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

from processor.config import ProcessorConfig
from processor.geo.spatial_index import SpatialIndex
from processor.ingestion.http_fetch import get_handler
from processor.ingestion.sources import SourceConfig, load_source_configs
from processor.pipeline import Pipeline
from processor.sink.influx_writer import InfluxWriter

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [PROCESSOR] %(levelname)s %(name)s — %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("processor.main")

# ── Graceful shutdown flag ─────────────────────────────────────────────────────
_running = True


def _shutdown(sig, frame):
    global _running
    logger.info("Shutdown signal (%s) — stopping scheduler.", sig)
    _running = False


# ── APScheduler job: fetch one source, process, write ─────────────────────────

def _poll_job(source: SourceConfig, pipeline: Pipeline, writer: InfluxWriter) -> None:
    """Called every source.frequency_seconds by APScheduler."""
    fetch = get_handler(source.type)
    readings = fetch(source)
    if not readings:
        logger.warning("No readings from source %s", source.name)
        return

    written = pipeline.run(readings, writer)
    logger.info("Source %s: %d reading(s), %d point(s) written",
                source.name, len(readings), written)


def schedule_sources(scheduler: BackgroundScheduler, sources: List[SourceConfig],
                     pipeline: Pipeline, writer: InfluxWriter) -> None:
    for source in sources:
        scheduler.add_job(
            func=_poll_job,
            args=[source, pipeline, writer],
            trigger="interval",
            seconds=source.frequency_seconds,
            next_run_time=datetime.now(timezone.utc),  # run immediately on start
            id=f"source:{source.name}",
            name=source.name,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Scheduled source %s (%s, %s) every %ds",
                    source.name, source.type, source.category, source.frequency_seconds)


# ── Main entry point ──────────────────────────────────────────────────────────

def main() -> None:
    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    config = ProcessorConfig.load()

    # ── 1. Spatial index ──────────────────────────────────────────────────────
    logger.info("Loading GeoNames data from %s", config.geocoder.geonames_file_path)
    index = SpatialIndex.from_geonames_file(config.geocoder.geonames_file_path)

    # ── 2. Sink ───────────────────────────────────────────────────────────────
    writer = InfluxWriter(config.influxdb, batch_size=config.processing.batch_size)
    writer.ping()

    # ── 3. Sources ────────────────────────────────────────────────────────────
    sources = load_source_configs(config.sources_path)
    if not sources:
        logger.warning("No sources configured in %s", config.sources_path)

    pipeline = Pipeline(config.processing, index)

    # ── 4. Scheduler ──────────────────────────────────────────────────────────
    scheduler = BackgroundScheduler(
        executors={"default": ThreadPoolExecutor(config.processing.workers)},
    )
    schedule_sources(scheduler, sources, pipeline, writer)
    scheduler.start()

    logger.info(
        "GeoPulse processor running with %d source(s), %d worker(s). "
        "Press Ctrl+C or send SIGTERM to stop.",
        len(sources), config.processing.workers,
    )
    try:
        while _running:
            time.sleep(1)
    finally:
        logger.info("Stopping scheduler…")
        scheduler.shutdown(wait=True)
        writer.close()
        logger.info("Processor stopped cleanly.")


if __name__ == "__main__":
    main()
