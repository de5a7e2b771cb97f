"""
UK postcode geocoding.

Lookups fall through four tiers until one answers:

    1. local cache, full postcode
    2. postcodes.io, full postcode
    3. postcodes.io, outward code centroid
    4. local cache, outward code

Remote answers are written back to the local cache.
"""
import csv
import os
import re
import logging
from io import StringIO
from typing import Optional, Dict, Any, List

import requests

from ..errors import GeocodingError
from ..observability import time_tracking_metrics

logger = logging.getLogger(__name__)

POSTCODE_RE = re.compile(r'^([A-Z]{1,2}[0-9][A-Z0-9]?)\s*([0-9][A-Z]{2})$', re.IGNORECASE)
OUTCODE_RE = re.compile(r'^[A-Z]{1,2}[0-9][A-Z0-9]?$', re.IGNORECASE)

TIER_LOCAL_POSTCODE = 'local_postcode'
TIER_REMOTE_POSTCODE = 'postcodes_io'
TIER_REMOTE_OUTCODE = 'postcodes_io_outcode'
TIER_LOCAL_OUTCODE = 'local_outcode'


def format_postcode(postcode: str) -> str:
    """Upper-case, strip spaces, and put one space before the inward code."""
    compact = re.sub(r'\s+', '', postcode or '').upper()
    if len(compact) >= 5:
        return f"{compact[:-3]} {compact[-3:]}"
    return compact


def is_valid_postcode(postcode: str) -> bool:
    return bool(postcode and POSTCODE_RE.match(postcode.strip()))


def outward_code(postcode: str) -> Optional[str]:
    match = POSTCODE_RE.match((postcode or '').strip())
    return match.group(1).upper() if match else None


def parse_address(address: str) -> Dict[str, Optional[str]]:
    """
    Split a legacy comma-separated address into structured parts.

    A trailing UK postcode is recognised anywhere in the last part; the
    remaining parts fill line 1, line 2, city and county from the front
    and back.
    """
    result = {
        'address_line_1': None,
        'address_line_2': None,
        'city': None,
        'county': None,
        'postcode': None,
    }
    if not address:
        return result

    parts = [p.strip() for p in address.split(',') if p.strip()]
    if parts:
        last = parts[-1]
        if is_valid_postcode(last):
            result['postcode'] = format_postcode(last)
            parts = parts[:-1]
        else:
            # "London SW1A 1AA" in a single trailing segment
            tail = re.search(r'([A-Z]{1,2}[0-9][A-Z0-9]?\s*[0-9][A-Z]{2})$', last, re.IGNORECASE)
            if tail:
                result['postcode'] = format_postcode(tail.group(1))
                remainder = last[:tail.start()].strip()
                parts = parts[:-1] + ([remainder] if remainder else [])

    if len(parts) >= 1:
        result['address_line_1'] = parts[0]
    if len(parts) == 2:
        result['city'] = parts[1]
    elif len(parts) == 3:
        result['address_line_2'] = parts[1]
        result['city'] = parts[2]
    elif len(parts) >= 4:
        result['address_line_2'] = ', '.join(parts[1:-2])
        result['city'] = parts[-2]
        result['county'] = parts[-1]
    return result


def compose_address(address_line_1=None, address_line_2=None, city=None, county=None, postcode=None) -> str:
    return ', '.join(p.strip() for p in (address_line_1, address_line_2, city, county, postcode) if p and p.strip())


class GeocodingService:
    def __init__(self, postcode_repo, base_url: Optional[str] = None, http_get=None, timeout: int = 10):
        self.postcode_repo = postcode_repo
        self.base_url = (base_url or os.environ.get('POSTCODES_API_URL', 'https://api.postcodes.io')).rstrip('/')
        self.http_get = http_get or requests.get
        self.timeout = timeout

    def geocode(self, postcode: str) -> Dict[str, Any]:
        """
        Resolve a UK postcode to coordinates.

        Args:
            postcode: Postcode in any spacing or case

        Returns:
            Dict with latitude, longitude, formatted_postcode, tier and
            approximate (True when only the outward code matched)

        Raises:
            GeocodingError: 400 invalid format, 404 unknown postcode,
                429 upstream rate limit, 502 upstream unavailable
        """
        if not postcode or not postcode.strip():
            raise GeocodingError('Postcode is required', status_code=400)
        if not is_valid_postcode(postcode):
            raise GeocodingError(
                f'Invalid postcode format: "{postcode.strip()}". Please use format like SW1A 1AA, M1 1AA, or B33 8TH',
                status_code=400,
            )

        formatted = format_postcode(postcode)
        outcode = outward_code(formatted)
        upstream_errors = []

        cached = self.postcode_repo.get_by_postcode(formatted)
        if cached:
            return self._result(cached.latitude, cached.longitude, formatted, TIER_LOCAL_POSTCODE)

        remote = self._fetch(f"/postcodes/{requests.utils.quote(formatted)}", upstream_errors)
        if remote:
            self._cache(formatted, remote, is_outcode=False)
            return self._result(remote['latitude'], remote['longitude'], remote.get('postcode') or formatted,
                                TIER_REMOTE_POSTCODE)

        remote = self._fetch(f"/outcodes/{requests.utils.quote(outcode)}", upstream_errors)
        if remote:
            self._cache(outcode, remote, is_outcode=True)
            return self._result(remote['latitude'], remote['longitude'], formatted, TIER_REMOTE_OUTCODE,
                                approximate=True)

        cached = self.postcode_repo.get_by_postcode(outcode)
        if cached:
            return self._result(cached.latitude, cached.longitude, formatted, TIER_LOCAL_OUTCODE, approximate=True)

        time_tracking_metrics.increment_geocoding_outcome('not_found' if not upstream_errors else 'error')
        if upstream_errors:
            raise GeocodingError(
                f'Postcode lookup service unavailable: {upstream_errors[-1]}',
                status_code=502,
            )
        raise GeocodingError(
            f'Postcode "{formatted}" not found in database. Please check the postcode and try again.',
            status_code=404,
        )

    def _result(self, latitude, longitude, formatted, tier, approximate=False):
        time_tracking_metrics.increment_geocoding_outcome(tier)
        return {
            'latitude': float(latitude),
            'longitude': float(longitude),
            'formatted_postcode': formatted,
            'tier': tier,
            'approximate': approximate,
        }

    def _fetch(self, path: str, upstream_errors: List[str]) -> Optional[Dict[str, Any]]:
        """
        GET a postcodes.io resource.

        Returns the 'result' object, or None on 404 and on transient failures
        (recorded in upstream_errors). A 429 aborts the whole lookup.
        """
        url = f"{self.base_url}{path}"
        try:
            resp = self.http_get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Postcode lookup {url} failed: {e}")
            upstream_errors.append(str(e))
            return None

        if resp.status_code == 404:
            return None
        if resp.status_code == 429:
            raise GeocodingError('Too many requests. Please wait a moment and try again.', status_code=429)
        if resp.status_code != 200:
            logger.warning(f"Postcode lookup {url} returned {resp.status_code}")
            upstream_errors.append(f'API error ({resp.status_code})')
            return None

        try:
            data = resp.json()
        except ValueError:
            upstream_errors.append('Invalid response from postcode service')
            return None
        result = data.get('result') if isinstance(data, dict) else None
        if not result or result.get('latitude') is None or result.get('longitude') is None:
            upstream_errors.append('Invalid response from postcode service')
            return None
        return result

    def _cache(self, key: str, remote: Dict[str, Any], is_outcode: bool):
        try:
            county = remote.get('admin_county')
            if isinstance(county, list):
                county = county[0] if county else None
            town = remote.get('admin_district')
            if isinstance(town, list):
                town = town[0] if town else None
            self.postcode_repo.upsert(
                key,
                float(remote['latitude']),
                float(remote['longitude']),
                is_outcode=is_outcode,
                town=town,
                county=county,
                source='postcodes.io',
            )
            self.postcode_repo.commit()
        except Exception:
            # Cache writes never fail a lookup that already has an answer
            logger.exception(f"Failed to cache postcode {key}")
            self.postcode_repo.rollback()

    def import_csv(self, content: str, limit: Optional[int] = None) -> Dict[str, int]:
        """
        Bulk-load postcodes or outward codes into the local cache.

        The CSV has a header row and columns postcode, latitude, longitude
        and optionally town and county.

        Returns:
            Dict with 'imported' and 'errors' counts
        """
        reader = csv.reader(StringIO(content))
        next(reader, None)
        imported, errors = 0, 0
        for row in reader:
            if limit is not None and imported + errors >= limit:
                break
            if not row or not any(cell.strip() for cell in row):
                continue
            try:
                raw = row[0].strip().replace('"', '')
                latitude = float(row[1])
                longitude = float(row[2])
            except (IndexError, ValueError):
                errors += 1
                continue
            is_outcode = bool(OUTCODE_RE.match(raw.replace(' ', '')))
            key = raw.replace(' ', '').upper() if is_outcode else format_postcode(raw)
            if not is_outcode and not is_valid_postcode(key):
                errors += 1
                continue
            self.postcode_repo.upsert(
                key,
                latitude,
                longitude,
                is_outcode=is_outcode,
                town=row[3].strip() if len(row) > 3 and row[3].strip() else None,
                county=row[4].strip() if len(row) > 4 and row[4].strip() else None,
                source='import',
            )
            imported += 1
            if imported % 500 == 0:
                self.postcode_repo.commit()
                logger.info(f"Imported {imported} postcodes")
        self.postcode_repo.commit()
        logger.info(f"Postcode import finished: {imported} imported, {errors} errors")
        return {'imported': imported, 'errors': errors}
