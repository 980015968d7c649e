"""Provider clients, scoring, enrichment and store tools"""
