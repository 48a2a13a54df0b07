"""AI enrichment: narrative summary, radiograph interpretation and CIF profile.

Every call returns an EnrichmentResult; failures never raise past the bridge.
"""
