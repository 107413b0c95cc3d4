# workorders/models/__init__.py
from workorders.models.work_order_models import WorkOrderRecord
from workorders.models.inventory_models import InventoryItem
from workorders.models.invoice_models import Invoice, InvoiceStatus
from workorders.models.activity_models import ActivityLog
from workorders.models.archive_models import ArchivedDocument
from workorders.models.counter_models import DocumentCounter
