"""plreview: PL/SQL review rules published as pull-request comments."""

__version__ = "0.3.0"
