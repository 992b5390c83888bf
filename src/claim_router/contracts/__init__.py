from .chain import LocalChain
from .tokens import ERC20Token
from .distributor import FeeLocker, Multicall3
from .router import ClaimRouter, TaxSplit, split_tax
from .simulator import (
    LocalChainReader,
    LocalChainWallet,
    LocalDeployment,
    deploy_base_fixture,
    local_address,
)

__all__ = [
    "LocalChain",
    "ERC20Token",
    "FeeLocker",
    "Multicall3",
    "ClaimRouter",
    "TaxSplit",
    "split_tax",
    "LocalChainReader",
    "LocalChainWallet",
    "LocalDeployment",
    "deploy_base_fixture",
    "local_address",
]
