"""
Threaded usage example of easycdm.

One device identity is shared by several worker threads, each running its
own session for a different PSSH.

Usage: python threaded_usage.py DEVICE.wvd LICENSE_URL PSSH_BASE64 [PSSH_BASE64 ...]
"""

import logging
import sys
from concurrent.futures import ThreadPoolExecutor

from easycdm import DeviceIdentity, open_session
from easycdm.client.infrastructure.device_loader import load_wvd
from easycdm.client.infrastructure.transport import LicenseTransport
from easycdm.common.pssh import parse_pssh

MIN_ARGS = 4

logger = logging.getLogger(__name__)


def fetch_keys(device: DeviceIdentity, url: str, pssh: str) -> dict[str, str]:
    transport = LicenseTransport(url)
    with open_session(device) as session:
        challenge = session.get_license_challenge(parse_pssh(pssh))
        session.ingest_response(transport.post(challenge))
        return {kid.hex(): key.hex() for kid, key in session.keys().items()}


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    if len(sys.argv) < MIN_ARGS:
        logger.error(__doc__)
        sys.exit(2)
    device_path, url, *pssh_list = sys.argv[1:]
    device = load_wvd(device_path)

    with ThreadPoolExecutor(max_workers=4) as pool:
        futures = [pool.submit(fetch_keys, device, url, pssh) for pssh in pssh_list]
        for pssh, future in zip(pssh_list, futures):
            try:
                keys = future.result()
            except Exception:
                logger.exception("License request failed for %s", pssh[:16])
                continue
            for kid, key in keys.items():
                logger.info("%s:%s", kid, key)

    logger.info("Threaded usage example completed")


if __name__ == "__main__":
    main()
