"""
GeoPulse — Sensor Reading Enrichment Processor.

Components:
    - geo: H3 multi-resolution spatial index built from a GeoNames gazetteer
    - validation: category-aware value-range validator
    - enrichment: spatial context + derived calculated fields
    - quality: reading quality scoring
    - aggregation: reading expansion seam (passthrough today)
    - ingestion: HTTP source fetchers and source definitions
    - sink: InfluxDB line-protocol writer
"""
