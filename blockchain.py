import hashlib, json, time, os, logging
from typing import List, Dict, Any
import config

logger = logging.getLogger(__name__)

class LedgerCorrupted(Exception):
    pass

class Block:
    def __init__(self, index:int, previous_hash:str, timestamp:float, transactions:List[Dict[str,Any]], nonce:int=0):
        self.index = index
        self.previous_hash = previous_hash
        self.timestamp = timestamp
        self.transactions = transactions
        self.nonce = nonce
        self.hash = self.compute_hash()

    def compute_hash(self) -> str:
        block_string = json.dumps({
            "index": self.index,
            "previous_hash": self.previous_hash,
            "timestamp": self.timestamp,
            "transactions": self.transactions,
            "nonce": self.nonce
        }, sort_keys=True)
        return hashlib.sha256(block_string.encode()).hexdigest()

    def to_dict(self):
        return {
            "index": self.index,
            "previous_hash": self.previous_hash,
            "timestamp": self.timestamp,
            "transactions": self.transactions,
            "nonce": self.nonce,
            "hash": self.hash
        }

class Blockchain:
    """Append-only notification log. One notification per mined block."""

    def __init__(self, chain_file: str = config.BLOCKCHAIN_FILE, difficulty: int = config.POW_DIFFICULTY):
        self.chain_file = str(chain_file)
        self.difficulty = difficulty
        self.chain: List[Block] = []
        self._ensure_chain_file()
        self._load_chain()

    def create_genesis_block(self) -> Block:
        return Block(0, "0", time.time(), [], 0)

    def _ensure_chain_file(self):
        dirp = os.path.dirname(self.chain_file)
        if dirp and not os.path.exists(dirp):
            os.makedirs(dirp, exist_ok=True)
        if not os.path.exists(self.chain_file):
            self.chain = [self.create_genesis_block()]
            self._write_chain()

    def _load_chain(self):
        with open(self.chain_file, "r") as f:
            data = json.load(f)
        self.chain = []
        for b in data:
            block = Block(b["index"], b["previous_hash"], b["timestamp"], b["transactions"], b.get("nonce",0))
            block.hash = b.get("hash") or block.compute_hash()
            self.chain.append(block)
        if not self.is_valid_chain():
            raise LedgerCorrupted(f"ledger {self.chain_file} failed validation on load")
        logger.info("loaded ledger %s with %d blocks", self.chain_file, len(self.chain))

    @property
    def last_block(self) -> Block:
        return self.chain[-1]

    def record_event(self, event: Dict[str,Any]) -> int:
        """Mine the notification into a new block and persist the chain."""
        last = self.last_block
        new_block = Block(
            index=last.index + 1,
            previous_hash=last.hash,
            timestamp=time.time(),
            transactions=[event],
            nonce=0
        )
        proof = self.proof_of_work(new_block)
        if not self.add_block(new_block, proof):
            raise LedgerCorrupted(f"block {new_block.index} was rejected")
        self._write_chain()
        return new_block.index

    def proof_of_work(self, block: Block) -> str:
        block.nonce = 0
        computed_hash = block.compute_hash()
        target_prefix = "0" * self.difficulty
        while not computed_hash.startswith(target_prefix):
            block.nonce += 1
            computed_hash = block.compute_hash()
        return computed_hash

    def add_block(self, block: Block, proof: str) -> bool:
        previous_hash = self.last_block.hash
        if previous_hash != block.previous_hash:
            return False
        if not proof.startswith("0" * self.difficulty) or proof != block.compute_hash():
            return False
        block.hash = proof
        self.chain.append(block)
        return True

    def to_list(self) -> List[Dict[str,Any]]:
        return [b.to_dict() for b in self.chain]

    def _write_chain(self):
        # write beside the chain and swap in, so a crash never leaves a truncated file
        tmp_file = self.chain_file + ".tmp"
        with open(tmp_file, "w") as f:
            json.dump(self.to_list(), f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_file, self.chain_file)

    def is_valid_chain(self) -> bool:
        for i in range(1, len(self.chain)):
            curr = self.chain[i]
            prev = self.chain[i-1]
            if curr.previous_hash != prev.hash:
                return False
            if curr.compute_hash() != curr.hash:
                return False
            if not curr.hash.startswith("0" * self.difficulty):
                return False
        return True

    def find_events(self, election_id: int) -> List[Dict[str,Any]]:
        res = []
        for b in self.chain:
            for tx in b.transactions:
                if tx.get("election_id") == election_id:
                    res.append(tx)
        return res
