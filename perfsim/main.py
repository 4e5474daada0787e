import uvicorn

from perfsim.core.app_factory import create_app
from perfsim.core.config import settings
from perfsim.core.warning_hook import install_warning_hook, resolve_warning_categories

app = create_app()

# Installed once for the lifetime of the process
install_warning_hook(resolve_warning_categories(settings.errors.reporting_categories))


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=settings.server.port, access_log=False)
