from django.core.files.storage import storages


class InvoiceStorage:
    """Resolves to the ``invoices`` alias configured in ``STORAGES``."""
    def __new__(cls, *args, **kwargs):
        return storages["invoices"]
