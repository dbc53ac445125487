# minhareceita

A toolbox for the CNPJ open data published by the Brazilian Federal Revenue.
It lists and downloads the source files, checks their integrity, builds small
samples for quick manual testing, turns the zipped CSV files into one JSON
record per CNPJ, and provides a WSGI application that serves those records.

## Installation

```console
pip install .
```

To run the test suite as well:

```console
pip install ".[test]"
pytest
```

## Command line

Everything below is available through the `minha-receita` command. Most
commands work on a data directory (`data` by default, change it with `-d` /
`--directory`); the directory must already exist. Errors are printed to
standard error and the command exits with status 1.

### Listing and downloading the source files

Print, sorted, the URLs of every file that is needed:

```console
minha-receita urls
minha-receita urls --skip --directory data
```

With `-x` / `--skip`, files that already exist in the directory are left out.

Download everything into the data directory:

```console
minha-receita download --directory data
```

Options:

* `-x`, `--skip` – do not download files that already exist;
* `-t`, `--timeout` – timeout for each request, as a duration such as `3m0s`,
  `90s` or `1h30m` (default `3m0s`);
* `-r`, `--retries` – maximum retries per request, `-1` for unlimited
  (default 32);
* `-p`, `--parallel` – maximum parallel requests (default 16);
* `-c`, `--chunk-size` – maximum length of the byte range of each HTTP request
  (default 1048576);
* `-e`, `--restart` – download every file from the beginning, even if a
  complete copy is already there.

The cities table from the National Treasure is fetched with a single request;
the Federal Revenue files are fetched in byte ranges. Downloading also writes
`updated_at.txt`, holding the date (`YYYY-MM-DD`) of the most recent change to
the Federal Revenue data set.

### Checking the files

Read every ZIP file in the directory and report the broken ones:

```console
minha-receita check --directory data
```

Add `-x` / `--delete` to remove the ZIP files that fail instead of stopping
with an error.

Create an MD5 checksum file (`<name>.md5`) next to each visible file in a
directory:

```console
minha-receita check checksum create --directory data
```

Compare the `.md5` files in a source directory with the files of the same
name in the data directory (create them there first):

```console
minha-receita check checksum check --directory data --src-directory backup
```

### Sampling

Copy the first lines of every ZIP file, of `TABMUN.CSV` and of
`updated_at.txt` into a smaller data set, handy for trying the whole process
quickly:

```console
minha-receita sample --directory data --target-directory data/sample --max-lines 10000
```

If the data directory has no `updated_at.txt`, pass `-u` / `--updated-at`
with a `YYYY-MM-DD` date to have one written in the sample directory; a date
in any other format is logged and ignored.

## Library

* `minhareceita.download` – `urls`, `download`, `download_files`,
  `simple_download`, `get_urls`, `federal_revenue_get_urls`,
  `national_treasure_get_urls` and `save_updated_at`, raising `DownloadError`
  on failure;
* `minhareceita.check` – `check`, `check_zip_file`, `check_zip_files`,
  `check_checksum`, `create_checksum` and `checksum_for`, raising `CheckError`
  on failure;
* `minhareceita.sample` – `sample`, `make_sample` and `sample_lines`;
* `minhareceita.transform` – reading of the archived CSV files
  (`archive.ArchivedCSV`, `archive.paths_for_source`), lookup tables
  (`lookups.load_lookups`), company and partner records (`company.Company`,
  `company.new_company`, `company.company_from_json`), and
  `venues.transform`, which runs the whole process against a database object;
* `minhareceita.api` – `Api`, a WSGI application, and `serve`, which runs it
  with the werkzeug development server on all interfaces.

```python
from minhareceita.transform.cast import to_date, format_date

day = to_date("19670630")
print(format_date(day))  # 1967-06-30
```

### Transforming into JSON records

`minhareceita.transform.venues.transform(directory, db)` reads the downloaded
files and hands the records to `db`, which must implement the
`minhareceita.transform.update.Database` protocol: `create_companies`,
`create_index`, `update_companies`, `add_partners`, `meta_save`, `pre_load`
and `post_load`. It first creates one record per venue (with personal data
such as e-mail addresses hidden unless `privacy=False`), then merges the base
CNPJ, partners and tax data into them, keyed by the 8-digit base CNPJ.

### Serving the records

`Api(db)` answers:

* `GET /<cnpj>` – the JSON stored for a CNPJ, masked or not; 400 for an
  invalid CNPJ, 404 when `db.get_company` raises; `GET /` redirects to the
  documentation;
* `GET /updated` – the extraction date read with `db.meta_read("updated-at")`;
* `GET /healthz` – an empty 200.

Other methods get 405 (`OPTIONS /<cnpj>` gets an empty 200). When a host is
given, or the `ALLOWED_HOST` environment variable is set for `serve`, requests
with any other `Host` header get 418.

## What this package does not do

It ships no database. Both the transform step and the web API work with a
database object supplied by the caller, and there are no commands to create
or drop tables, to run the transform, or to start the web API; call
`transform` and `serve` from Python with your own database object.