import json
import os
import re
import subprocess
from datetime import datetime

# --- Configuration ---
SCRIPT_DIR = os.path.dirname(os.path.realpath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(SCRIPT_DIR, '..'))

REQUIREMENTS_FILE = os.path.join(SCRIPT_DIR, "requirements", "RS-Project.json")
TESTS_DIR = os.path.join(SCRIPT_DIR, "tests")
RTM_DIR = os.path.join(SCRIPT_DIR, "rtm")
REPORT_FILE = os.path.join(PROJECT_ROOT, ".pytest_report.json")

CODE_VERSION = "v0.1.0"

# test_SCN_BAL_001_nested_blocks -> prefix 'SCN_BAL', numbers ['001']
PROTOCOL_PATTERN = re.compile(r"test_([A-Z]{3}_[A-Z]{3})", re.IGNORECASE)


def summarize_failure(longrepr):
    """
    Reduces a pytest 'longrepr' string to the failing line, the 'E' lines and
    the reported location.
    """
    if not isinstance(longrepr, str):
        return {"error": "Failure reason is not a string."}
    lines = longrepr.strip().split('\n')
    failing = next((line.strip()[2:] for line in lines if line.strip().startswith('>')), "N/A")
    return {
        "location": lines[-1],
        "failing_line": failing,
        "error_details": [line.strip()[2:] for line in lines if line.strip().startswith('E ')],
    }


def load_requirements(path=REQUIREMENTS_FILE):
    """Flattens functional and qualitative requirements into a dict keyed by ID."""
    if not os.path.exists(path):
        print(f"Error: Requirements file not found at '{path}'")
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    requirements = {}
    for module_data in data.get("modules", {}).values():
        for req_list in module_data.get("functions", {}).values():
            for req in req_list:
                requirements[req['id']] = req
    for req_list in data.get("qualitative_requirements", {}).get("categories", {}).values():
        for req in req_list:
            requirements[req['id']] = req

    print(f"Loaded {len(requirements)} requirements from '{path}'.")
    return requirements


def run_protocols():
    """
    Runs the protocol suite with the JSON report plugin and returns
    {nodeid: {"status", "failure_reason"}}.
    """
    print(f"\nRunning test protocols in '{TESTS_DIR}'...")
    try:
        subprocess.run(
            ["pytest", TESTS_DIR, "--json-report", f"--json-report-file={REPORT_FILE}"],
            cwd=PROJECT_ROOT, capture_output=True, text=True, check=False,
        )
    except FileNotFoundError:
        print("Error: 'pytest' command not found.")
        return {}

    if not os.path.exists(REPORT_FILE):
        print(f"Error: Pytest report file '{REPORT_FILE}' not found.")
        return {}
    with open(REPORT_FILE, 'r', encoding='utf-8') as f:
        report = json.load(f)

    results = {}
    for test in report.get("tests", []):
        passed = test["outcome"] == "passed"
        failure = "N/A"
        if not passed:
            phase = test.get('call') or test.get('setup') or {}
            failure = summarize_failure(phase.get('longrepr')) if phase.get('longrepr') else {"error": "No failure details in the report."}
        results[test["nodeid"]] = {"status": "Passed" if passed else "Failed", "failure_reason": failure}
    return results


def requirement_ids(nodeid):
    """Maps a protocol's node id to the requirement IDs it covers."""
    match = PROTOCOL_PATTERN.search(nodeid)
    if not match:
        return []
    prefix = match.group(1)
    base_id = prefix.replace('_', '-').upper()
    test_name = nodeid.split("::")[-1]
    return [f"{base_id}-{num}" for num in re.findall(r"(\d{3})", test_name.split(prefix)[-1])]


def build_rtm(requirements, results):
    """Pairs every requirement with its protocol result, or marks it Pending."""
    entries = {}
    tested_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    for nodeid, result in results.items():
        for req_id in requirement_ids(nodeid):
            if req_id in requirements and req_id not in entries:
                entries[req_id] = {
                    "requirement_id": req_id,
                    "description": requirements[req_id].get('requirement', ''),
                    "test_protocol_id": nodeid.split('::')[0],
                    "status": result["status"],
                    "code_version": CODE_VERSION,
                    "test_date_and_time": tested_at,
                    "failure_reason": result["failure_reason"],
                }

    for req_id, req in requirements.items():
        if req_id not in entries:
            entries[req_id] = {
                "requirement_id": req_id,
                "description": req.get('requirement', ''),
                "test_protocol_id": "Manual Audit" if req_id.startswith("QLT") else "TBD",
                "status": "Pending",
                "code_version": "N/A",
                "test_date_and_time": "N/A",
                "failure_reason": "N/A",
            }

    return {
        "project": "R Bridge",
        "document_version": "1.0",
        "description": "Traces every requirement to its test protocol and validation status. Generated by generate_rtm.py.",
        "traceability_matrix": sorted(entries.values(), key=lambda entry: entry['requirement_id']),
    }


def main():
    rtm = build_rtm(load_requirements(), run_protocols())
    os.makedirs(RTM_DIR, exist_ok=True)
    output_path = os.path.join(RTM_DIR, "RTM-Project.json")
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(rtm, f, indent=2)
    print(f"\nGenerated RTM at '{output_path}'")


if __name__ == "__main__":
    main()
