"""Batching, retrying log producer that sends through a caller-supplied client."""