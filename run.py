#!/usr/bin/env python3
"""
Run script for the Jejak Liqo membership backend
"""
import uvicorn

from liqo.config.settings import settings
from liqo.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
