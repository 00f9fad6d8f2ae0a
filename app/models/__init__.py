from app.models.order import Order
from app.models.organization_settings import OrganizationSettings
from app.models.counter import Counter
from app.models.queue_state import OrderQueueState

# add ALL models here
