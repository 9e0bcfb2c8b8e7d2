class DataSourceError(Exception):
    """
    Raised when the dataset cannot be fetched or parsed.

    Covers unreachable URLs, fetch timeouts, missing local files and text
    that is not parseable as comma-separated values with a header row.
    A failed load aborts the whole run; there is no retry.
    """
    pass


class SchemaError(Exception):
    """Raised when an analysis column is absent or holds non-binary values."""
    pass


class EstimationError(Exception):
    """
    Raised when a treatment effect cannot be estimated.

    Typical causes are a treatment with no treated or no control units,
    fewer complete observations than regressors, or a rank-deficient
    design matrix.
    """
    pass


class OutputError(Exception):
    """Raised when a report artifact cannot be written."""
    pass
