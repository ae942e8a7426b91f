"""
Check the SharePoint / Microsoft Graph connection using the SHAREPOINT_* settings in .env.
Looks up the site and drive, then lists the base folder.

Run from project root:
  python scripts/test_sharepoint.py
  python scripts/test_sharepoint.py --path Villas
"""
import os
import sys
import argparse

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.config import get_settings
from app.services.graph import GraphClient, GraphError


def main():
    parser = argparse.ArgumentParser(description="Check the SharePoint connection")
    parser.add_argument("--path", type=str, default=None, help="Folder to list (default: base folder)")
    args = parser.parse_args()

    settings = get_settings()
    if not settings.sharepoint_configured:
        print("SharePoint not configured. Set SHAREPOINT_TENANT_ID, SHAREPOINT_CLIENT_ID, SHAREPOINT_CLIENT_SECRET")
        print("and SHAREPOINT_SITE_ID or SHAREPOINT_SITE_HOSTNAME in .env")
        return 1

    client = GraphClient(settings)
    try:
        site = client.get_site()
        print(f"Site:  {site.get('displayName') or site.get('name')} ({site.get('id')})")
        drive = client.get_drive()
        print(f"Drive: {drive.get('name')} ({drive.get('id')})")
        path = args.path if args.path is not None else settings.sharepoint_base_folder
        children = client.list_children(path)
        print(f"Folder '{path or '/'}': {len(children)} item(s)")
        for item in children:
            kind = "dir " if "folder" in item else "file"
            print(f"  {kind} {item.get('name')}")
    except GraphError as e:
        print(f"Graph error ({e.status_code}): {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
