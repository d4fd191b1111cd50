# domain_extensions/kenya_liquor/exceptions.py


class KenyaTaxError(Exception):
    """Base exception for KRA tax calculations"""
    pass


class InvalidInput(KenyaTaxError, ValueError):
    """Raised for negative or non-numeric amounts, volumes, quantities or rates"""
    pass
