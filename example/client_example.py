import logging

from claim_router.adapters.evm import ClaimSettings, EVMAdapter, LocalAccountWallet, format_token_amount
from claim_router.clients import ClaimApiClient, ClaimOrchestrator, JsonFileStore, TransactionLedger
from claim_router.clients.orchestrator import status_text
from claim_router.engine.events import (
    ApprovalRequiredEvent,
    ClaimSubmitEvent,
    ClaimSubmittedEvent,
    ClaimConfirmedEvent,
    ClaimFailedEvent,
)

logging.basicConfig(level=logging.INFO)

wpk = "0xxxx"  # Replace with the fee owner's private key (or set EVM_PRIVATE_KEY)

settings = ClaimSettings.from_env()
chain = EVMAdapter(settings)
wallet = LocalAccountWallet(chain._get_web3_instance(), private_key=wpk)
ledger = TransactionLedger(JsonFileStore("claim-history.json"))


async def main():
    async with ClaimApiClient(base_url="http://localhost:8000") as read_api:
        orchestrator = ClaimOrchestrator(wallet, chain, read_api, ledger, settings)

        for event_class in (ApprovalRequiredEvent, ClaimSubmitEvent, ClaimSubmittedEvent,
                            ClaimConfirmedEvent, ClaimFailedEvent):
            orchestrator.hook(event_class)(print_status)

        tokens = await read_api.resolve_claimable(wallet.account, force_refresh=True)
        for reward in tokens.total_claimable.rewards:
            print(f"  {reward.symbol}: {reward.formatted_amount}")

        return await orchestrator.claim_all(wallet.account, tokens.total_claimable)


async def print_status(event, deps):
    print("→", status_text(event))


if __name__ == "__main__":
    import asyncio
    outcome = asyncio.run(main())
    print("Outcome:", outcome.status, outcome.tx_hash or outcome.message)
    for entry in ledger.recent(limit=5):
        total = sum(reward.raw_amount for reward in entry.rewards if reward.symbol == "WETH")
        print(f"  {entry.timestamp} {entry.type} {entry.tx_hash} WETH {format_token_amount(total, 18)}")
