from .health import health_bp
from .auth import auth_bp
from .cars import cars_bp
from .bookings import bookings_bp
from .payments import payments_bp
from .stripe_webhook import webhook_bp
from .admin import admin_bp
from .audit_logs import audit_bp
