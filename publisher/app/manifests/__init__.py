"""Helm chart copied verbatim into ``<basePath>/<cluster>/mgmt`` on every deploy."""
