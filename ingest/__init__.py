"""
Ingest package: reads run data from Jenkins.
"""
