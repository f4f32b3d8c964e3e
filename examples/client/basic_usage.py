"""
Basic usage example of easycdm.

This example loads a device from a .wvd file, requests a license for one
PSSH in privacy mode and prints the content keys.

Usage: python basic_usage.py DEVICE.wvd LICENSE_URL PSSH_BASE64
"""

import logging
import sys

from easycdm import open_session, verify_service_certificate
from easycdm.client.infrastructure.device_loader import load_wvd
from easycdm.client.infrastructure.transport import LicenseTransport
from easycdm.common.exceptions import CdmError
from easycdm.common.pssh import parse_pssh
from easycdm.common.trust import COMMON_PRIVACY_CERT

EXPECTED_ARGS = 4


def main() -> None:
    # Configure logging
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    if len(sys.argv) != EXPECTED_ARGS:
        logger.error(__doc__)
        sys.exit(2)
    device_path, url, pssh = sys.argv[1:]

    try:
        device = load_wvd(device_path)
        transport = LicenseTransport(url)
        service_cert = verify_service_certificate(COMMON_PRIVACY_CERT)

        with open_session(device) as session:
            challenge = session.get_license_challenge(
                parse_pssh(pssh), privacy_mode=True, service_cert=service_cert
            )
            session.ingest_response(transport.post(challenge))
            for kid, key in session.keys().items():
                logger.info("%s:%s", kid.hex(), key.hex())

        logger.info("Basic usage example completed")
    except CdmError:
        logger.exception("Error")
        sys.exit(1)


if __name__ == "__main__":
    main()
