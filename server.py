import importlib
import os

import uvicorn

# --------- CONFIG ---------
# Module holding the SSE app factory and the factory's name
MAIN_FILE = "nano_banana_mcp_server"
APP_FACTORY = "createApp"
# --------------------------

module = importlib.import_module(MAIN_FILE)
createApp = getattr(module, APP_FACTORY)

if __name__ == "__main__":
    # Hosting platforms provide the PORT environment variable
    port = int(os.environ.get("PORT", 8081))
    module.configureLogging(module.getVerbosityFromEnv())
    uvicorn.run(createApp(), host="0.0.0.0", port=port)
