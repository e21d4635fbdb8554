from .date_utils import period_label, lookback_window, to_date, date_range
from .math_utils import mean, coefficient_of_variation, autocorrelation, linear_trend

__all__ = [
    'period_label',
    'lookback_window',
    'to_date',
    'date_range',
    'mean',
    'coefficient_of_variation',
    'autocorrelation',
    'linear_trend'
]
