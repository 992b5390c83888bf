import logging
from contextlib import asynccontextmanager

from claim_router.adapters.evm import ClaimSettings, EVMAdapter
from claim_router.servers import ClaimServer, TokensService

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

# CLAIM_RPC_URL, CLAIM_CACHE_TTL, ... are read from the environment / .env
settings = ClaimSettings.from_env()
print("Serving claim reads for router", settings.router_address, "on chain", settings.chain_id)

service = TokensService(EVMAdapter(settings), settings=settings)


@asynccontextmanager
async def lifespan(app):
    yield
    await service.aclose()


app = ClaimServer(
    service=service,
    title="Claim Read API",
    lifespan=lifespan,
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="localhost", port=8000, log_level="debug")
