# Celery is imported lazily so that plain Django tooling (migrations, type checks)
# does not need a broker configuration.
# The celery app is still available when needed via: from marketsync.config.celery import app


def __getattr__(name):
    if name == "celery_app":
        from marketsync.config.celery import app as celery_app

        return celery_app
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
