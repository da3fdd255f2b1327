"""Propostas map data pipeline.

Downloads the Google My Maps KML for a region (freguesia), extracts and
validates its placemarks, groups them into proposals by slug, resolves
their images to local files and writes the GeoJSON layer and Jekyll
proposal pages consumed by the campaign site.
"""

__version__ = "0.1.0"
