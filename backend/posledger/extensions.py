# Overview: Flask extension instances for database, migrations, and the event stream.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from .notifications import EventPublisher

db = SQLAlchemy()
migrate = Migrate()
publisher = EventPublisher()
