"""Legal text intake pipeline.

Turns OCR text of Algerian legal and administrative documents into
structured records: taxonomy-driven entity extraction, form schema
mapping with confidence scores, and a human review workflow that gates
what is committed to storage.
"""
