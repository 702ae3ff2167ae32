import logging
import tempfile

from stashcache import Pool
from stashcache.drivers import CompositeDriver, EphemeralDriver, FileSystemDriver
from stashcache.utils.logger import setup_logging

setup_logging(level=logging.INFO)

# Fast memory layer in front of a persistent disk layer.
with tempfile.TemporaryDirectory() as directory:
    memory = EphemeralDriver(max_items=100)
    disk = FileSystemDriver(path=directory)
    chain = CompositeDriver([memory, disk])
    pool = Pool(driver=chain)

    print("--- Write goes to every layer (disk first) ---")
    pool.get_item("prices/eurusd").set(1.0842).save()
    print(f"memory records: {len(memory)}")

    print("\n--- Memory is lost, disk still has it ---")
    memory.clear()
    print(f"memory records after clear: {len(memory)}")
    print(f"read through chain: {pool.get_item('prices/eurusd').get()}")
    print(f"memory records after read (back-filled): {len(memory)}")

    print(f"\nchain persistent: {chain.is_persistent()}")
    chain.close()
