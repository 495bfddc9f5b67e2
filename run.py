#!/usr/bin/env python3
import asyncio

from quantscore.main import main

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
