"""LightLDA topic modelling: corpus conversion, data blocks, vocabulary slicing, alias tables, Metropolis-Hastings sampling and likelihood evaluation."""

__version__ = "0.1.0"