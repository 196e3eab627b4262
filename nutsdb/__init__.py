"""Storage building blocks of an embeddable key/value store: entries, data files, B+ tree indexes, lists, sets and sorted sets."""

__version__ = "0.1.0"