"""web3hire: wallet-authenticated job and task marketplace backend."""

__version__ = "0.1.0"
