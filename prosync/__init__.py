"""prosync: two-way ProPresenter library synchronisation over a shared folder"""

__version__ = "1.0.0"
