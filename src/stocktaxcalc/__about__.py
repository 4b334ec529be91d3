__title__ = "stocktaxcalc"
__version__ = "0.3.0"
