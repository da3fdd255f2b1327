"""Pipeline stages.

Each module performs a single unit of work for one region run:
- fetch_kml: Download the My Maps KML export
- parse_kml: Extract and validate features from the KML
- tidy_features: Normalise property keys to the whitelist
- group_proposals: Group features by slug and merge their properties
- resolve_images: Download images and rewrite links to local paths
- write_geojson: Write the FeatureCollection for the map layer
- generate_pages: Write proposal pages and the proposals index
- eixo_colours: Assign palette colours to eixo categories
- translate: Machine translation with a persistent cache
"""
