#!/usr/bin/env python3
"""
Pre-commit hook to detect hardcoded credentials in code.
Prevents committing passwords, gateway keys, media-storage URLs, tokens,
and other secrets.
"""

import re
import sys
from typing import List, Tuple

# Patterns that indicate potential credentials
CREDENTIAL_PATTERNS = [
    # Generic secrets
    (r'password\s*=\s*["\'][^"\']{3,}["\']', "hardcoded password"),
    (r'passwd\s*=\s*["\'][^"\']{3,}["\']', "hardcoded password"),
    (r'secret\s*=\s*["\'][^"\']{3,}["\']', "hardcoded secret"),
    (r'api_key\s*=\s*["\'][^"\']{3,}["\']', "hardcoded API key"),
    (r'token\s*=\s*["\'][^"\']{3,}["\']', "hardcoded token"),

    # Payment gateway
    (r'rzp_(test|live)_[A-Za-z0-9]{10,}', "Razorpay key id"),
    (r'razorpay_key_secret\s*=\s*["\'][^"\']{8,}["\']', "Razorpay key secret"),

    # Media storage
    (r'cloudinary://[^:\s]+:[^@\s]+@[\w-]+', "Cloudinary URL with credentials"),

    # Database connection strings with embedded credentials
    (r'mongodb(\+srv)?://[^:/\s]+:[^@\s]+@', "MongoDB URL with credentials"),
    (r'smtps?://[^:/\s]+:[^@\s]+@', "SMTP URL with credentials"),

    # Private keys (Firebase service accounts embed one)
    (r'-----BEGIN (RSA |EC )?PRIVATE KEY-----', "private key"),
    (r'"private_key"\s*:\s*"-----BEGIN', "service account private key"),

    # Google API keys
    (r'AIza[0-9A-Za-z_-]{35}', "Google API key"),

    # Generic base64 secrets (32+ chars)
    (r'["\'][A-Za-z0-9+/]{32,}={0,2}["\']', "potential base64 encoded secret"),

    # JWT tokens
    (r'eyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*', "JWT token"),
]

# Patterns that are safe (exclude false positives)
SAFE_PATTERNS = [
    r'password\s*=\s*["\']changeme["\']',  # Placeholder
    r'password\s*=\s*["\']password["\']',  # Placeholder
    r'password\s*=\s*["\']<.*>["\']',      # Template
    r'password\s*=\s*["\']example["\']',   # Example
    r'password\s*=\s*["\']test["\']',      # Test value
    r'=\s*os\.getenv',                     # From environment
    r'=\s*os\.environ',                    # From environment
    r'=\s*settings\.',                     # From the settings object
    r'\$\{.*\}',                           # Template variable
    r'rzp_test_x+',                        # Documentation placeholder
    r'cloudinary://<',                     # Documentation placeholder
]


def is_safe_match(line: str) -> bool:
    """Check if the line matches a safe pattern (false positive)."""
    for pattern in SAFE_PATTERNS:
        if re.search(pattern, line, re.IGNORECASE):
            return True
    return False


def check_line(line: str) -> str:
    """Return the violation type of a line, or an empty string."""
    if is_safe_match(line):
        return ""
    for pattern, violation_type in CREDENTIAL_PATTERNS:
        if re.search(pattern, line, re.IGNORECASE):
            return violation_type
    return ""


def check_file(filepath: str) -> List[Tuple[int, str, str]]:
    """
    Check a file for credential patterns.
    Returns list of (line_number, line_content, violation_type).
    """
    violations = []

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, start=1):
                violation_type = check_line(line)
                if violation_type:
                    violations.append((line_num, line.strip(), violation_type))

    except UnicodeDecodeError:
        # Skip binary files
        pass
    except OSError as e:
        print(f"Warning: Could not read {filepath}: {e}", file=sys.stderr)

    return violations


def main(filenames: List[str]) -> int:
    """
    Check files for hardcoded credentials.
    Returns 0 if no credentials found, 1 otherwise.
    """
    all_violations = {}

    for filename in filenames:
        violations = check_file(filename)
        if violations:
            all_violations[filename] = violations

    if all_violations:
        print("ERROR: Hardcoded credentials detected!\n")
        print("SECURITY RISK: Never commit passwords, gateway keys, or secrets to Git.\n")

        for filepath, violations in all_violations.items():
            print(f"{filepath}:")
            for line_num, line_content, violation_type in violations:
                print(f"   Line {line_num}: {violation_type}")
                print(f"   > {line_content}")
            print()

        print("Solutions:")
        print("  1. Use environment variables read through api/src/config.py:")
        print("     RAZORPAY_KEY_SECRET=... / CLOUDINARY_URL=... in your .env")
        print("  2. Pass secrets through the settings object:")
        print("     secret = settings.razorpay_key_secret")
        print("  3. For documentation values, use placeholders:")
        print("     rzp_test_xxxxxxxxxxxx, cloudinary://<key>:<secret>@<cloud>")
        print("\n  Remove the credentials and retry your commit.")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
