"""scatter tests package.

Houses unit/integration tests for:
- Reed–Solomon erasure coding and the codec adapter
- Stripe windowing and padding
- Placement shufflers and the distribution ledger
- Shard writer staging, manifest I/O, the encoder and verification
- The `scatter` CLI

This file ensures pytest package discovery is consistent.
"""
