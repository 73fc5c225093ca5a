from agentfi_ops.core.constants.chains import CHAIN_ID_BLAST, CHAIN_ID_BLAST_SEPOLIA

MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"
ERC6551_REGISTRY_ADDRESS = "0x000000006551c19487814612e58FE06813775758"
BLAST_ADDRESS = "0x4300000000000000000000000000000000000002"

AGENTFI_CONTRACTS: dict[int, dict[str, str]] = {
    CHAIN_ID_BLAST: {
        "blast": BLAST_ADDRESS,
        "blast_points": "0x2536FE9ab3F511540F2f9e2eC2A805005C3Dd800",
        "erc6551_registry": ERC6551_REGISTRY_ADDRESS,
        "multicall_forwarder": "0xAD55F8b65d5738C6f63b54E651A09cC5d873e4d8",
        "contract_factory": "0x9D735e7926729cAB93b10cb5814FF8487Fb6D5e8",
        "gas_collector": "0xf237c20584DaCA970498917470864f4d027de4ca",
        "balance_fetcher": "0x3f8Dc480BEAeF711ecE5110926Ea2780a1db85C5",
        "genesis_collection": "0x5066A1975BE96B777ddDf57b496397efFdDcB4A9",
        "genesis_factory": "0x700b6f8B315247DD41C42A6Cfca1dAE6B4567f3B",
        "genesis_account_impl": "0xb9b7FFBaBEC52DFC0589f7b331E4B8Cb78E06301",
        "genesis_account_factory": "0x101E03D71e756Da260dC5cCd19B6CdEEcbB4397F",
        "agent_registry": "0x12F0A3453F63516815fe41c89fAe84d218Af0FAF",
        "strategy_collection": "0x73E75E837e4F3884ED474988c304dE8A437aCbEf",
        "strategy_factory": "0x09906C1eaC081AC4aF24D6F7e05f7566440b4601",
        "strategy_account_impl": "0x4b1e8C60E4a45FD64f5fBf6c497d17Ab12fba213",
        "dispatcher": "0x59c0269f4120058bA195220ba02dd0330d92c36D",
        "explorer_collection": "0xFB0B3C31eAf58743603e8Ee1e122547EC053Bf18",
        "explorer_account_impl": "0xC429897531D8F70093C862C81a7B3F18b6F46426",
        "strategy_account_impl_v2": "0x376Ba5cF93908D78a3d98c05C8e0B39C0207568d",
        "concentrated_liquidity_agent_factory": (
            "0x96E50f33079F749cb20f32C05DBb62B09620a817"
        ),
        "weth": "0x4300000000000000000000000000000000000004",
        "usdb": "0x4300000000000000000000000000000000000003",
    },
    CHAIN_ID_BLAST_SEPOLIA: {
        "blast": BLAST_ADDRESS,
        "blast_points": "0x2fc95838c71e76ec69ff817983BFf17c710F34E0",
        "erc6551_registry": ERC6551_REGISTRY_ADDRESS,
        "multicall_forwarder": "0x91074d0AB2e5E4b61c4ff03A40E6491103bEB14a",
        "contract_factory": "0x9D735e7926729cAB93b10cb5814FF8487Fb6D5e8",
        "gas_collector": "0xf237c20584DaCA970498917470864f4d027de4ca",
        "balance_fetcher": "0x68b1a5d10FeCD6246299913a553CBb99Ac88913E",
        "genesis_collection": "0x5066A1975BE96B777ddDf57b496397efFdDcB4A9",
        "genesis_factory": "0x700b6f8B315247DD41C42A6Cfca1dAE6B4567f3B",
        "genesis_account_impl": "0x9DE8d1AfA3eF64AcC41Cd84533EE09A0Cd87fefF",
        "genesis_account_factory": "0xed545485E59C4Dec4156340871CEA8242674b6a2",
        "agent_registry": "0x40473B0D0cDa8DF6F73bFa0b5D35c2f701eCfe23",
        "strategy_collection": "0xD6eC1A987A276c266D17eF8673BA4F05055991C7",
        "strategy_factory": "0x9578850dEeC9223Ba1F05aae1c998DD819c7520B",
        "strategy_account_impl": "0xF62f98e2aF80BB65e544D38783254bE294a4526d",
        "dispatcher": "0x1523e29DbfDb7655A8358429F127cF4ea9c601Fd",
        "explorer_collection": "0x1eE50B39EB877F7053dC18816C3f7121Fc7340De",
        "explorer_account_impl": "0x37edeCaaa04e3bCD652B8ac35d928d57b66b212D",
        "concentrated_liquidity_agent_factory": (
            "0x06ACC535E997bcc338927586802797A37be81A34"
        ),
        "weth": "0x4200000000000000000000000000000000000023",
        "usdb": "0x4200000000000000000000000000000000000022",
    },
}

# strategy module implementations, used to classify strategy agents
STRATEGY_MODULES: dict[int, dict[str, str]] = {
    CHAIN_ID_BLAST: {
        "0x35a4B9B95bc1D93Bf8e3CA9c030fc15726b83E6F": "Dex Balancer",
        "0x067299A9C3F7E8d4A9d9dD06E2C1Fe3240144389": "Dex Balancer",
        "0x54D588243976F7fA4eaf68d77122Da4e6C811167": "Multiplier Maxxooor",
        "0x10C02a975a748Db5B749Dc420154dD945e2e8657": "Concentrated Liquidity",
    },
    CHAIN_ID_BLAST_SEPOLIA: {
        "0xB52f71b3a8bB630F0F08Ca4f85EeF0d29212cEC0": "Multiplier Maxxooor",
        "0x0961666fC994009221C2f5fd9eA540190490200D": "Concentrated Liquidity",
        "0x42Bd5c64C5a6d49F4969D7Cd5Cd7e7286d5AF0fE": "Concentrated Liquidity",
    },
}


def get_contract_address(chain_id: int, name: str) -> str:
    book = AGENTFI_CONTRACTS.get(int(chain_id))
    if book is None:
        raise ValueError(f"No AgentFi contracts known for chain {chain_id}")
    address = book.get(name)
    if not address:
        raise ValueError(f"Contract '{name}' not known on chain {chain_id}")
    return address
