import logging
import time

from stashcache import Pool
from stashcache.utils.logger import setup_logging

setup_logging(level=logging.DEBUG)

pool = Pool().set_namespace("demo")

print("--- Basic get / set ---")
item = pool.get_item("reports/daily")
print(f"First read: value={item.get()!r} hit={item.is_hit()}")

item.set({"rows": 42}).expires_after(60).save()
again = pool.get_item("reports/daily")
print(f"Second read: value={again.get()!r} hit={again.is_hit()}")
print(f"Created {again.get_creation()}, expires {again.get_expiration()}")

print("\n--- Hierarchical clear ---")
pool.get_item("reports/daily/eu").set("eu rows").save()
pool.get_item("reports/weekly").set("weekly rows").save()
pool.delete_item("reports/daily")
for key in ("reports/daily", "reports/daily/eu", "reports/weekly"):
    print(f"{key}: hit={pool.has_item(key)}")


print("\n--- Memoised function ---")


@pool.cached(ttl=300)
def slow_square(x):
    print(f"  computing {x}^2 ...")
    time.sleep(0.2)
    return x * x


for x in (3, 3, 4):
    start = time.perf_counter()
    result = slow_square(x)
    print(f"slow_square({x}) = {result} in {time.perf_counter() - start:.3f}s")
