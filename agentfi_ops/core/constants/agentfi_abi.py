from __future__ import annotations

# Minimal ABIs for the AgentFi contracts driven by this package.

# operator management shared by the AgentRegistry and the Dispatcher
OPERATOR_ABI = [
    {
        "type": "function",
        "stateMutability": "view",
        "name": "isOperator",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "setOperators",
        "inputs": [
            {
                "name": "params",
                "type": "tuple[]",
                "components": [
                    {"name": "account", "type": "address"},
                    {"name": "isAuthorized", "type": "bool"},
                ],
            }
        ],
        "outputs": [],
    },
]

AGENT_REGISTRY_ABI = [
    {
        "type": "function",
        "stateMutability": "view",
        "name": "getTbasOfNft",
        "inputs": [
            {"name": "collection", "type": "address"},
            {"name": "agentID", "type": "uint256"},
        ],
        "outputs": [
            {
                "name": "tbas",
                "type": "tuple[]",
                "components": [
                    {"name": "agentAddress", "type": "address"},
                    {"name": "implementationAddress", "type": "address"},
                ],
            }
        ],
    },
    *OPERATOR_ABI,
    {
        "type": "event",
        "anonymous": False,
        "name": "AgentRegistered",
        "inputs": [
            {"name": "agentAddress", "type": "address", "indexed": True},
            {"name": "collection", "type": "address", "indexed": True},
            {"name": "agentID", "type": "uint256", "indexed": True},
        ],
    },
]

AGENT_COLLECTION_ABI = [
    {
        "type": "function",
        "stateMutability": "view",
        "name": "factoryIsWhitelisted",
        "inputs": [{"name": "factory", "type": "address"}],
        "outputs": [{"name": "isWhitelisted", "type": "bool"}],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "setWhitelist",
        "inputs": [
            {
                "name": "params",
                "type": "tuple[]",
                "components": [
                    {"name": "factory", "type": "address"},
                    {"name": "shouldWhitelist", "type": "bool"},
                ],
            }
        ],
        "outputs": [],
    },
]

GENESIS_ACCOUNT_FACTORY_ABI = [
    {
        "type": "function",
        "stateMutability": "view",
        "name": "getCreateCount",
        "inputs": [{"name": "agentID", "type": "uint256"}],
        "outputs": [{"name": "count", "type": "uint256"}],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "createAccount",
        "inputs": [
            {"name": "agentID", "type": "uint256"},
            {"name": "configID", "type": "uint256"},
        ],
        "outputs": [{"name": "account", "type": "address"}],
    },
]

_TOKEN_DEPOSIT_COMPONENTS = [
    {"name": "token", "type": "address"},
    {"name": "amount", "type": "uint256"},
]

STRATEGY_FACTORY_ABI = [
    {
        "type": "function",
        "stateMutability": "payable",
        "name": "createAgent",
        "inputs": [{"name": "creationSettingsID", "type": "uint256"}],
        "outputs": [
            {"name": "agentID", "type": "uint256"},
            {"name": "agentAddress", "type": "address"},
        ],
    },
    {
        "type": "function",
        "stateMutability": "payable",
        "name": "createAgent",
        "inputs": [
            {"name": "creationSettingsID", "type": "uint256"},
            {
                "name": "deposits",
                "type": "tuple[]",
                "components": _TOKEN_DEPOSIT_COMPONENTS,
            },
        ],
        "outputs": [
            {"name": "agentID", "type": "uint256"},
            {"name": "agentAddress", "type": "address"},
        ],
    },
]

_AGENT_CREATION_SETTINGS_COMPONENTS = [
    {"name": "strategyAccountImpl", "type": "address"},
    {"name": "explorerAccountImpl", "type": "address"},
    {"name": "strategyInitializationCall", "type": "bytes"},
    {"name": "explorerInitializationCall", "type": "bytes"},
    {"name": "isActive", "type": "bool"},
]

# single-settings factories (dex balancer, concentrated liquidity, ...)
AGENT_FACTORY_ABI = [
    {
        "type": "function",
        "stateMutability": "view",
        "name": "getAgentCreationSettings",
        "inputs": [],
        "outputs": [
            {"name": "strategyAccountImpl_", "type": "address"},
            {"name": "explorerAccountImpl_", "type": "address"},
            {"name": "strategyInitializationCall_", "type": "bytes"},
            {"name": "explorerInitializationCall_", "type": "bytes"},
            {"name": "isActive_", "type": "bool"},
        ],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "postAgentCreationSettings",
        "inputs": [
            {
                "name": "params",
                "type": "tuple",
                "components": _AGENT_CREATION_SETTINGS_COMPONENTS,
            }
        ],
        "outputs": [],
    },
]

_BATCH_CALL_COMPONENTS = [
    {"name": "to", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "data", "type": "bytes"},
    {"name": "operation", "type": "uint8"},
]

AGENT_ACCOUNT_ABI = [
    {
        "type": "function",
        "stateMutability": "payable",
        "name": "execute",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
            {"name": "data", "type": "bytes"},
            {"name": "operation", "type": "uint8"},
        ],
        "outputs": [{"name": "result", "type": "bytes"}],
    },
    {
        "type": "function",
        "stateMutability": "payable",
        "name": "executeBatch",
        "inputs": [
            {
                "name": "calls",
                "type": "tuple[]",
                "components": _BATCH_CALL_COMPONENTS,
            }
        ],
        "outputs": [{"name": "results", "type": "bytes[]"}],
    },
    {
        "type": "function",
        "stateMutability": "view",
        "name": "overrides",
        "inputs": [{"name": "selector", "type": "bytes4"}],
        "outputs": [
            {"name": "implementation", "type": "address"},
            {"name": "requiredRole", "type": "bytes32"},
        ],
    },
    {
        "type": "function",
        "stateMutability": "view",
        "name": "strategyType",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "setOverrides",
        "inputs": [
            {
                "name": "overrides",
                "type": "tuple[]",
                "components": [
                    {"name": "implementation", "type": "address"},
                    {
                        "name": "functionParams",
                        "type": "tuple[]",
                        "components": [
                            {"name": "selector", "type": "bytes4"},
                            {"name": "requiredRole", "type": "bytes32"},
                        ],
                    },
                ],
            }
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "setRoles",
        "inputs": [
            {
                "name": "params",
                "type": "tuple[]",
                "components": [
                    {"name": "role", "type": "bytes32"},
                    {"name": "account", "type": "address"},
                    {"name": "grantAccess", "type": "bool"},
                ],
            }
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "blastConfigure",
        "inputs": [],
        "outputs": [],
    },
    {
        "type": "function",
        "stateMutability": "payable",
        "name": "multicall",
        "inputs": [{"name": "data", "type": "bytes[]"}],
        "outputs": [{"name": "results", "type": "bytes[]"}],
    },
]

STRATEGY_AGENT_ABI = [
    {
        "type": "function",
        "stateMutability": "payable",
        "name": "moduleA_depositBalance",
        "inputs": [],
        "outputs": [],
    },
    {
        "type": "function",
        "stateMutability": "payable",
        "name": "moduleA_withdrawBalance",
        "inputs": [],
        "outputs": [],
    },
    {
        "type": "function",
        "stateMutability": "payable",
        "name": "moduleA_withdrawBalanceTo",
        "inputs": [{"name": "receiver", "type": "address"}],
        "outputs": [],
    },
]

_MINT_BALANCE_PARAMS = {
    "name": "mintParams",
    "type": "tuple",
    "components": [
        {"name": "manager", "type": "address"},
        {"name": "pool", "type": "address"},
        {"name": "slippageLiquidity", "type": "uint24"},
        {"name": "tickLower", "type": "int24"},
        {"name": "tickUpper", "type": "int24"},
        {"name": "sqrtPriceX96", "type": "uint160"},
    ],
}

_CL_DEPOSITS = [
    {"name": "deposit0", "type": "tuple", "components": _TOKEN_DEPOSIT_COMPONENTS},
    {"name": "deposit1", "type": "tuple", "components": _TOKEN_DEPOSIT_COMPONENTS},
]

CONCENTRATED_LIQUIDITY_AGENT_FACTORY_ABI = [
    {
        "type": "function",
        "stateMutability": "payable",
        "name": "createConcentratedLiquidityAgentForRoot",
        "inputs": [
            _MINT_BALANCE_PARAMS,
            *_CL_DEPOSITS,
            {"name": "rootAgentAddress", "type": "address"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "stateMutability": "payable",
        "name": "createConcentratedLiquidityAgentAndExplorer",
        "inputs": [_MINT_BALANCE_PARAMS, *_CL_DEPOSITS],
        "outputs": [],
    },
]

CONTRACT_FACTORY_ABI = [
    {
        "type": "function",
        "stateMutability": "payable",
        "name": "deploy",
        "inputs": [
            {"name": "bytecode", "type": "bytes"},
            {"name": "salt", "type": "bytes32"},
        ],
        "outputs": [{"name": "contractAddress", "type": "address"}],
    },
    {
        "type": "function",
        "stateMutability": "payable",
        "name": "deployAndCall",
        "inputs": [
            {"name": "bytecode", "type": "bytes"},
            {"name": "salt", "type": "bytes32"},
            {"name": "calldata", "type": "bytes"},
        ],
        "outputs": [{"name": "contractAddress", "type": "address"}],
    },
    {
        "type": "event",
        "anonymous": False,
        "name": "ContractDeployed",
        "inputs": [
            {"name": "contractAddress", "type": "address", "indexed": True},
        ],
    },
]

ERC6551_REGISTRY_ABI = [
    {
        "type": "function",
        "stateMutability": "view",
        "name": "account",
        "inputs": [
            {"name": "implementation", "type": "address"},
            {"name": "salt", "type": "bytes32"},
            {"name": "chainId", "type": "uint256"},
            {"name": "tokenContract", "type": "address"},
            {"name": "tokenId", "type": "uint256"},
        ],
        "outputs": [{"name": "account", "type": "address"}],
    },
    {
        "type": "function",
        "stateMutability": "nonpayable",
        "name": "createAccount",
        "inputs": [
            {"name": "implementation", "type": "address"},
            {"name": "salt", "type": "bytes32"},
            {"name": "chainId", "type": "uint256"},
            {"name": "tokenContract", "type": "address"},
            {"name": "tokenId", "type": "uint256"},
        ],
        "outputs": [{"name": "account", "type": "address"}],
    },
]
