"""Flask routes package."""
from photodater.routes.upload import upload_bp
from photodater.routes.api import api_bp

__all__ = ['upload_bp', 'api_bp']
