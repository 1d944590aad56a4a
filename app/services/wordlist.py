"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

import logging
from typing import Iterable, List, Optional

from app.errors import WordlistError

logger = logging.getLogger(__name__)

# Common infrastructure, service and administrative labels
DEFAULT_WORDLIST = (
    # Core infrastructure
    "www", "www1", "www2", "www3", "mail", "mail1", "mail2", "ftp", "sftp",
    "webmail", "smtp", "pop", "pop3", "imap", "ns", "ns1", "ns2", "ns3", "ns4",
    "dns", "dns1", "dns2", "mx", "mx1", "mx2", "email", "relay", "exchange",
    "owa", "autodiscover", "autoconfig", "lyncdiscover", "mta", "postfix",

    # Web / API
    "api", "api1", "api2", "api3", "api-v1", "api-v2", "apiv2", "v1", "v2",
    "v3", "rest", "graphql", "gateway", "gw", "ws", "wss", "websocket", "app",
    "apps", "app1", "app2", "mobile", "m", "wap", "web", "web1", "web2",
    "web3", "service", "services", "svc", "soap", "rpc", "edge", "proxy",

    # Development
    "dev", "dev1", "dev2", "develop", "development", "staging", "stage",
    "stg", "test", "test1", "test2", "testing", "qa", "uat", "preprod",
    "pre-prod", "sandbox", "demo", "beta", "alpha", "preview", "lab", "labs",
    "canary", "nightly", "local", "localhost", "int", "integration",

    # Admin / management
    "admin", "administrator", "admins", "root", "sys", "system", "sysadmin",
    "console", "dashboard", "panel", "control", "controlpanel", "cpanel",
    "whm", "plesk", "webmin", "manage", "management", "manager", "backend",
    "backoffice", "office", "cms", "wp", "wordpress", "phpmyadmin", "adminer",

    # Authentication
    "login", "signin", "signup", "register", "auth", "authentication", "sso",
    "oauth", "oauth2", "saml", "cas", "ldap", "ad", "idp", "identity",
    "accounts", "account", "id", "my", "myaccount", "profile", "password",

    # Internal / private
    "internal", "intranet", "extranet", "private", "corp", "corporate",
    "vpn", "vpn1", "vpn2", "remote", "access", "secure", "ssl", "tls",
    "citrix", "rdp", "gateway1", "bastion", "jump", "jumpbox", "staff",
    "employee", "employees", "hr",

    # Content / media
    "static", "static1", "static2", "assets", "cdn", "cdn1", "cdn2", "media",
    "images", "img", "img1", "photos", "pics", "video", "videos", "files",
    "file", "uploads", "upload", "download", "downloads", "storage", "s3",
    "content", "resources", "res",

    # Documentation / support
    "docs", "doc", "documentation", "help", "support", "wiki", "kb",
    "knowledgebase", "faq", "guide", "manual", "status", "statuspage",
    "developer", "developers", "dev-portal", "portal",

    # Monitoring / analytics
    "health", "monitor", "monitoring", "grafana", "kibana", "prometheus",
    "alertmanager", "metrics", "analytics", "stats", "tracking", "logs",
    "logging", "log", "nagios", "zabbix", "sentry", "apm", "elk",

    # DevOps / CI
    "jenkins", "ci", "cd", "build", "builds", "travis", "bamboo", "teamcity",
    "gitlab", "github", "bitbucket", "git", "svn", "repo", "repos", "deploy",
    "deployment", "release", "releases", "jira", "confluence", "sonar",
    "sonarqube", "argo", "argocd", "drone",

    # Cloud / containers
    "k8s", "kubernetes", "kube", "docker", "registry", "harbor", "nexus",
    "artifactory", "rancher", "portainer", "swarm", "nomad", "openshift",
    "cloud", "aws", "azure", "gcp", "lb", "loadbalancer", "cluster", "node",
    "node1", "node2", "server", "server1", "server2", "srv", "host", "host1",
    "host2", "vm",

    # Databases
    "db", "db1", "db2", "database", "sql", "mysql", "postgres", "postgresql",
    "pg", "mongo", "mongodb", "redis", "memcache", "memcached", "cache",
    "elasticsearch", "elastic", "es", "solr", "cassandra", "mariadb",
    "oracle", "mssql", "couchdb", "influx", "influxdb",

    # Infrastructure services
    "vault", "consul", "etcd", "zookeeper", "kafka", "rabbitmq", "mq",
    "queue", "search", "smtp1", "ntp", "time", "proxy1", "firewall", "fw",
    "router", "switch", "voip", "sip", "pbx", "vc",

    # Business applications
    "crm", "erp", "hrm", "finance", "billing", "payment", "payments", "pay",
    "invoice", "invoices", "shop", "store", "cart", "checkout", "ecommerce",
    "order", "orders", "sales", "marketing", "partner", "partners",
    "affiliate", "affiliates", "reseller", "vendor", "vendors", "suppliers",
    "customer", "customers", "client", "clients",

    # Communication / community
    "chat", "slack", "teams", "meet", "zoom", "webex", "conference", "voice",
    "blog", "news", "forum", "forums", "community", "social", "feed", "rss",
    "events", "careers", "jobs", "press", "about", "go", "link", "links",

    # Regional
    "us", "usa", "eu", "europe", "uk", "de", "fr", "au", "asia", "ap", "sg",
    "jp", "cn", "in", "ca", "br", "east", "west", "north", "south", "central",

    # Environment / lifecycle
    "prod", "production", "live", "old", "new", "legacy", "archive", "backup",
    "backups", "bak", "temp", "tmp", "origin", "mirror", "dr", "failover",
    "secondary", "primary",
)


def _clean(words: Iterable[str]) -> List[str]:
    """Lower-case, drop blanks and comments, dedupe keeping first occurrence"""
    seen = set()
    cleaned = []
    for word in words:
        word = word.strip().lower().strip(".")
        if not word or word.startswith("#") or word in seen:
            continue
        seen.add(word)
        cleaned.append(word)
    return cleaned


def load_wordlist(path: Optional[str] = None) -> List[str]:
    """
    Load the subdomain wordlist.

    Args:
        path (str): Optional file with one label per line. When omitted the
            embedded default list is used.

    Returns:
        List[str]: Deduplicated labels in file order

    Raises:
        WordlistError: The file is missing, unreadable or has no entries
    """
    if not path:
        return _clean(DEFAULT_WORDLIST)

    try:
        with open(path, "r", encoding="utf-8") as f:
            words = _clean(f.readlines())
    except FileNotFoundError:
        raise WordlistError(f"Wordlist file not found: {path}")
    except OSError as e:
        raise WordlistError(f"Wordlist file could not be read: {path} ({e})")

    if not words:
        raise WordlistError(f"Wordlist file is empty: {path}")

    logger.info(f"Loaded {len(words)} words from {path}")
    return words
