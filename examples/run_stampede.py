import logging
import threading
import time

from stashcache import InvalidationMethod, Pool
from stashcache.utils.logger import setup_logging

setup_logging(level=logging.DEBUG)

pool = Pool()
pool.set_invalidation_method(InvalidationMethod.OLD)

# Seed an entry that is already expired.
seed = pool.get_item("quotes/latest")
seed.set("yesterday's quote").expires_after(-1).save()

regenerations = []


def worker(name):
    item = pool.get_item("quotes/latest")
    value = item.get()
    if item.is_hit():
        print(f"[{name}] served while someone else regenerates: {value!r}")
        return
    with item.locked():
        print(f"[{name}] regenerating ...")
        regenerations.append(name)
        time.sleep(0.5)
        item.set("today's quote").expires_after(300).save()
    print(f"[{name}] stored fresh value")


first = threading.Thread(target=worker, args=("worker-1",))
first.start()
time.sleep(0.1)
others = [threading.Thread(target=worker, args=(f"worker-{i}",)) for i in range(2, 5)]
for t in others:
    t.start()
for t in [first] + others:
    t.join()

print(f"\nRegenerated {len(regenerations)} time(s): {regenerations}")
print(f"Final value: {pool.get_item('quotes/latest').get()!r}")

print("\n--- Sleep policy: wait for the regenerating caller ---")
waiter = pool.get_item("quotes/latest")
waiter.set_invalidation_method(InvalidationMethod.SLEEP, 200, 3)
print(f"value={waiter.get()!r} hit={waiter.is_hit()}")
