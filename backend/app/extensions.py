# Overview: Flask extension instances for the database, migrations and outbound sinks.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

# Key under app.extensions holding the notification sink for this app.
NOTIFICATION_SINK_KEY = "notification_sink"
